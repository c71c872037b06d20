from __future__ import annotations

import logging
from typing import Any

from .config import Settings
from .discovery.resolver import IdentityResolver
from .engine import IntoxEngine
from .host.adapters import ContextHostAdapter
from .host.injection import InjectionAdapter, SlotPlacement
from .host.ports import HostPort
from .reconcile import Reconciler
from .scheduler import LifecycleScheduler
from .state.factory import build_blob_store
from .state.store import StateStore

logger = logging.getLogger("intox_system")


def configure_logging(level: str = "INFO") -> None:
    resolved = getattr(logging, level.upper(), logging.INFO)
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    # basicConfig is a no-op once the root logger has handlers.
    logging.getLogger().setLevel(resolved)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def build_engine(settings: Settings, context: Any, *, host: HostPort | None = None) -> IntoxEngine:
    """Wire the store, host adapter and pipeline for one host context."""
    host = host or ContextHostAdapter(context)
    store = StateStore(build_blob_store(settings), storage_key=settings.storage_key)

    def _placement() -> SlotPlacement:
        return SlotPlacement(
            prompt_key=settings.prompt_key,
            slot_type=host.slot_type(settings.slot_type),
            role=settings.slot_role,
        )

    injector = InjectionAdapter(setter_provider=host.prompt_setter, placement_provider=_placement)
    scheduler = LifecycleScheduler(
        store=store,
        host=host,
        resolver=IdentityResolver(),
        reconciler=Reconciler(store),
        injector=injector,
        default_chat_id=settings.default_chat_id,
        safety_interval_seconds=settings.safety_interval_seconds,
    )
    return IntoxEngine(
        store=store,
        scheduler=scheduler,
        events_enabled=settings.events_enabled,
        structure_watch_enabled=settings.structure_watch_enabled,
    )


async def start_engine(context: Any, settings: Settings | None = None) -> IntoxEngine:
    settings = settings or Settings.from_env()
    settings.validate()
    configure_logging(settings.log_level)
    engine = build_engine(settings, context)
    init = getattr(engine.store.blobs, "init", None)
    if callable(init):
        try:
            await init()
        except Exception as exc:
            logger.warning("State backend init failed (%s); state will not persist this session", exc)
    await engine.start()
    logger.info(
        "Intox-system started (backend=%s chat=%s interval=%.1fs)",
        settings.state_backend,
        engine.current_chat_id(),
        settings.safety_interval_seconds,
    )
    return engine
