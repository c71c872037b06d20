from __future__ import annotations

import asyncio
import logging

from .prompts.state_block import synthesize
from .scheduler import LifecycleScheduler
from .state.store import AttributeRecord, StateStore
from .state.utils import normalize_character_key

logger = logging.getLogger("intox_system")


class IntoxEngine:
    """Runtime facade: startup, triggers and the manual edit operations of the settings panel."""

    def __init__(
        self,
        *,
        store: StateStore,
        scheduler: LifecycleScheduler,
        events_enabled: bool = True,
        structure_watch_enabled: bool = True,
    ) -> None:
        self.store = store
        self.scheduler = scheduler
        self.events_enabled = events_enabled
        self.structure_watch_enabled = structure_watch_enabled
        self.started = False

    async def start(self) -> None:
        if self.started:
            return
        self.scheduler.bind_loop(asyncio.get_running_loop())
        await self.store.load()
        await self.scheduler.reconcile_and_inject()
        if self.events_enabled:
            events = self.scheduler.install_event_triggers()
            logger.info("Subscribed to %s host events", len(events))
        if self.structure_watch_enabled and not self.scheduler.install_structure_trigger():
            logger.info("Chat structure watch unavailable; relying on events and safety timer")
        self.scheduler.start_safety_timer()
        self.started = True

    async def stop(self) -> None:
        await self.scheduler.stop()
        self.started = False

    def current_chat_id(self) -> str:
        return self.scheduler.current_chat_id()

    def characters(self) -> list[tuple[str, AttributeRecord]]:
        bucket = self.store.bucket(self.current_chat_id())
        return sorted(bucket.characters.items(), key=lambda item: ((item[1].name or "").casefold(), item[0]))

    def preview(self) -> str:
        return synthesize(self.store.bucket(self.current_chat_id()))

    async def refresh(self) -> str:
        return await self.scheduler.reconcile_and_inject()

    async def _commit(self) -> None:
        await self.store.save()
        self.scheduler.inject_current()

    async def set_attribute(self, key: str, field_name: str, value: object, *, name: str | None = None) -> AttributeRecord:
        chat_id = self.current_chat_id()
        normalized = normalize_character_key(key)
        if name is None and normalized not in self.store.bucket(chat_id).characters:
            name = str(key).strip()
        record = self.store.set_attribute(chat_id, normalized, field_name, value, name=name)
        await self._commit()
        return record

    async def reset_character(self, key: str) -> bool:
        changed = self.store.reset_character(self.current_chat_id(), normalize_character_key(key))
        if changed:
            await self._commit()
        return changed

    async def reset_all(self) -> int:
        count = self.store.reset_all(self.current_chat_id())
        await self._commit()
        return count

    async def forget_character(self, key: str) -> bool:
        removed = self.store.forget_character(self.current_chat_id(), normalize_character_key(key))
        if removed:
            logger.info("Forgot character %s in chat=%s", key, self.current_chat_id())
        await self._commit()
        return removed
