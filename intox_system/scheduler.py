from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Callable, Sequence

from .discovery.resolver import IdentityResolver
from .host.injection import InjectionAdapter, InjectionResult
from .host.ports import HostPort
from .prompts.state_block import synthesize
from .reconcile import Reconciler
from .state.store import StateStore

logger = logging.getLogger("intox_system.scheduler")

HOST_EVENT_NAMES = (
    "chat_changed",
    "CHAT_CHANGED",
    "character_selected",
    "CHARACTER_SELECTED",
    "group_updated",
    "GROUP_UPDATED",
    "message_added",
    "MESSAGE_ADDED",
    "settings_opened",
    "SETTINGS_OPENED",
)

EventHandler = Callable[..., None]


SUBSCRIBE_METHOD_NAMES = ("addEventListener", "add_event_listener", "on")


def _subscription_method(bus: Any) -> Callable[[str, EventHandler], Any] | None:
    # Event-target style first, emitter style last.
    for method_name in SUBSCRIBE_METHOD_NAMES:
        method = getattr(bus, method_name, None)
        if callable(method):
            return method
    return None


class LifecycleScheduler:
    """Feeds host events, chat structure changes and a safety timer into one pipeline.

    Triggers are not coordinated. Reconciliation only merges and injection
    always overwrites the same slot, so overlapping runs settle on the same
    state and no locking is needed.
    """

    def __init__(
        self,
        *,
        store: StateStore,
        host: HostPort,
        resolver: IdentityResolver,
        reconciler: Reconciler,
        injector: InjectionAdapter,
        default_chat_id: str = "default",
        safety_interval_seconds: float = 5.0,
        event_names: Sequence[str] = HOST_EVENT_NAMES,
    ) -> None:
        self.store = store
        self.host = host
        self.resolver = resolver
        self.reconciler = reconciler
        self.injector = injector
        self.default_chat_id = default_chat_id
        self.safety_interval_seconds = max(0.5, float(safety_interval_seconds))
        self.event_names = tuple(event_names)

        self.subscribed_events: list[str] = []
        self.structure_watch_installed = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._timer_task: asyncio.Task[None] | None = None
        self._pending: set[asyncio.Task[Any]] = set()

    def current_chat_id(self) -> str:
        chat_id: str | None = None
        try:
            chat_id = self.host.conversation_id()
        except Exception as exc:
            logger.debug("Host chat id lookup failed: %s", exc)
        return chat_id or self.default_chat_id

    def run_pipeline(self, chat_id: str | None = None) -> str:
        """Resolve, reconcile, render and inject for one chat without yielding."""
        chat_id = chat_id or self.current_chat_id()
        self.store.last_known_chat_id = chat_id
        candidates = self.resolver.resolve(self.host)
        result = self.reconciler.reconcile(chat_id, candidates)
        if result.created:
            logger.info("Tracking new characters in chat=%s: %s", chat_id, ", ".join(result.created))
        text = synthesize(self.store.bucket(chat_id))
        self.injector.inject(text)
        return text

    async def reconcile_and_inject(self, chat_id: str | None = None) -> str:
        text = self.run_pipeline(chat_id)
        await self.store.save()
        return text

    def inject_current(self) -> InjectionResult:
        chat_id = self.current_chat_id()
        return self.injector.inject(synthesize(self.store.bucket(chat_id)))

    def handle_host_event(self, *_args: Any, **_kwargs: Any) -> None:
        self._dispatch("event")

    def handle_structure_change(self, *_args: Any, **_kwargs: Any) -> None:
        chat_id = self.current_chat_id()
        if chat_id == self.store.last_known_chat_id:
            return
        logger.debug("Chat switch detected from structure change: %s -> %s", self.store.last_known_chat_id, chat_id)
        self._dispatch("structure")

    def install_event_triggers(self) -> list[str]:
        bus = None
        with contextlib.suppress(Exception):
            bus = self.host.event_bus()
        if bus is None:
            logger.debug("Host exposes no event bus; relying on structure watch and timer")
            return []

        subscribe = _subscription_method(bus)
        if subscribe is None:
            logger.debug("Host event bus has no known subscription method")
            return []

        for event_name in self.event_names:
            try:
                subscribe(event_name, self.handle_host_event)
                self.subscribed_events.append(event_name)
            except Exception as exc:
                logger.debug("Host rejected subscription to %s: %s", event_name, exc)
        return list(self.subscribed_events)

    def install_structure_trigger(self) -> bool:
        try:
            self.structure_watch_installed = bool(self.host.watch_structure(self.handle_structure_change))
        except Exception as exc:
            logger.debug("Chat structure watch unavailable: %s", exc)
            self.structure_watch_installed = False
        return self.structure_watch_installed

    def start_safety_timer(self) -> None:
        self._loop = asyncio.get_running_loop()
        if self._timer_task is not None and not self._timer_task.done():
            return
        self._timer_task = asyncio.create_task(self._safety_loop(), name="intox-safety-reinject")

    async def stop(self) -> None:
        task = self._timer_task
        self._timer_task = None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        pending = list(self._pending)
        for item in pending:
            item.cancel()
        for item in pending:
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await item

    async def _safety_loop(self) -> None:
        while True:
            await asyncio.sleep(self.safety_interval_seconds)
            try:
                self.inject_current()
            except Exception:
                logger.exception("Safety re-injection failed")

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def _dispatch(self, reason: str) -> None:
        loop = self._loop
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None and (loop is None or running is loop):
            self._schedule_on_loop(reason)
            return
        if loop is None or loop.is_closed():
            logger.debug("Dropping %s trigger, no event loop bound", reason)
            return
        loop.call_soon_threadsafe(self._schedule_on_loop, reason)

    def _schedule_on_loop(self, reason: str) -> None:
        task = asyncio.get_running_loop().create_task(self._run_triggered(reason))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _run_triggered(self, reason: str) -> None:
        try:
            await self.reconcile_and_inject()
        except Exception:
            logger.exception("Reconcile and inject failed (trigger=%s)", reason)
