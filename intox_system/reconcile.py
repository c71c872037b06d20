from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .discovery.resolver import CandidateIdentity
from .state.store import AttributeRecord, StateStore
from .state.utils import now_ms


@dataclass(slots=True)
class ReconcileResult:
    created: list[str] = field(default_factory=list)
    renamed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.created or self.renamed)


class Reconciler:
    """Merge-only sync of discovered identities into a chat bucket.

    Records missing from a discovery pass are kept as they are, so values
    tuned for a character who scrolled out of view survive until an explicit
    forget.
    """

    def __init__(self, store: StateStore) -> None:
        self.store = store

    def reconcile(self, chat_id: str, candidates: Iterable[CandidateIdentity]) -> ReconcileResult:
        result = ReconcileResult()
        characters = self.store.bucket(chat_id).characters
        for candidate in candidates:
            existing = characters.get(candidate.key)
            if existing is None:
                characters[candidate.key] = AttributeRecord(name=candidate.name, updated_at=now_ms())
                result.created.append(candidate.key)
                continue
            if existing.name != candidate.name:
                existing.name = candidate.name
                result.renamed.append(candidate.key)
        return result
