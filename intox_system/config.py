from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


load_dotenv()


def _env_lookup(name: str, aliases: tuple[str, ...] = ()) -> str | None:
    for key in (name, *aliases):
        # Be tolerant to UTF-8 BOM accidentally saved in .env key names.
        for candidate in (key, f"\ufeff{key}"):
            raw = os.getenv(candidate)
            if raw is not None:
                return raw
    return None


def _env_bool(name: str, default: bool, aliases: tuple[str, ...] = ()) -> bool:
    raw = _env_lookup(name, aliases)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float, aliases: tuple[str, ...] = ()) -> float:
    raw = _env_lookup(name, aliases)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_str(name: str, default: str, aliases: tuple[str, ...] = ()) -> str:
    raw = _env_lookup(name, aliases)
    if raw is None:
        return default
    value = raw.strip()
    return value if value else default


STATE_BACKENDS = frozenset({"sqlite", "memory"})


@dataclass(slots=True)
class Settings:
    state_backend: str = "sqlite"
    sqlite_path: Path = Path("./data/intox_state.db")
    storage_key: str = "intox_system_v2_state"

    prompt_key: str = "intox-system:state"
    slot_type: str = "in_chat"
    slot_role: str = "system"
    default_chat_id: str = "default"

    safety_interval_seconds: float = 5.0
    events_enabled: bool = True
    structure_watch_enabled: bool = True

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            state_backend=_env_str("INTOX_STATE_BACKEND", "sqlite").lower(),
            sqlite_path=Path(_env_str("INTOX_SQLITE_PATH", "./data/intox_state.db")).expanduser(),
            storage_key=_env_str("INTOX_STORAGE_KEY", "intox_system_v2_state"),
            prompt_key=_env_str("INTOX_PROMPT_KEY", "intox-system:state"),
            slot_type=_env_str("INTOX_SLOT_TYPE", "in_chat"),
            slot_role=_env_str("INTOX_SLOT_ROLE", "system"),
            default_chat_id=_env_str("INTOX_DEFAULT_CHAT_ID", "default"),
            safety_interval_seconds=_env_float(
                "INTOX_SAFETY_INTERVAL_SECONDS",
                5.0,
                aliases=("INTOX_REINJECT_INTERVAL_SECONDS",),
            ),
            events_enabled=_env_bool("INTOX_EVENTS_ENABLED", True),
            structure_watch_enabled=_env_bool("INTOX_STRUCTURE_WATCH_ENABLED", True),
            log_level=_env_str("INTOX_LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> None:
        if self.state_backend not in STATE_BACKENDS:
            raise ValueError("INTOX_STATE_BACKEND must be 'sqlite' or 'memory'")
        if not self.storage_key:
            raise ValueError("INTOX_STORAGE_KEY cannot be empty")
        if not self.prompt_key:
            raise ValueError("INTOX_PROMPT_KEY cannot be empty")
        if not self.default_chat_id:
            raise ValueError("INTOX_DEFAULT_CHAT_ID cannot be empty")
        if self.safety_interval_seconds < 0.5:
            raise ValueError("INTOX_SAFETY_INTERVAL_SECONDS must be >= 0.5")
