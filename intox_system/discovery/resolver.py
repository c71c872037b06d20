from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from ..host.ports import HostPort
from ..state.utils import normalize_character_key
from .sources import DiscoverySource, default_sources

logger = logging.getLogger("intox_system.discovery")

FALLBACK_KEY = "character"
FALLBACK_NAME = "Character"


@dataclass(slots=True, frozen=True)
class CandidateIdentity:
    key: str
    name: str


def fallback_identity() -> CandidateIdentity:
    return CandidateIdentity(key=FALLBACK_KEY, name=FALLBACK_NAME)


class IdentityResolver:
    def __init__(self, sources: Sequence[DiscoverySource] | None = None) -> None:
        self.sources = list(sources) if sources is not None else default_sources()

    def resolve(self, host: HostPort) -> list[CandidateIdentity]:
        found: dict[str, CandidateIdentity] = {}
        for source in self.sources:
            try:
                names = list(source.discover(host))
            except Exception as exc:
                logger.debug("Discovery source %s failed: %s", getattr(source, "name", source), exc)
                continue
            for name in names:
                display = str(name or "").strip()
                if not display:
                    continue
                key = normalize_character_key(display)
                # Later sources win on display text only.
                found[key] = CandidateIdentity(key=key, name=display)

        if not found:
            return [fallback_identity()]
        return list(found.values())
