from __future__ import annotations

import contextlib
import logging
from typing import Any, Callable, Sequence

from .ports import StructureCallback

logger = logging.getLogger("intox_system.host")


def _lookup(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _lookup_path(obj: Any, path: str) -> Any:
    current = obj
    for part in path.split("."):
        current = _lookup(current, part)
        if current is None:
            return None
    return current


def _call_first(obj: Any, names: Sequence[str]) -> Any:
    for name in names:
        fn = _lookup(obj, name)
        if not callable(fn):
            continue
        with contextlib.suppress(Exception):
            value = fn()
            if value is not None:
                return value
    return None


class ContextHostAdapter:
    """Maps a duck-typed host context object onto the host port.

    Host builds expose the same capability under different names, so every
    accessor probes a fixed list of known call and property paths and returns
    the first usable value. A failing probe is skipped.
    """

    CONVERSATION_ID_CALLS = ("getCurrentChatId", "get_current_chat_id")
    CONVERSATION_ID_PATHS = ("chat.id", "chat_metadata.chat_id", "currentChatId", "current_chat_id")
    MESSAGE_LOG_PATHS = ("chat.messages", "chat", "chat_messages")
    CHARACTER_CALLS = ("getCurrentCharacter", "get_current_character")
    CHARACTER_PATHS = ("character",)
    GROUP_CALLS = ("getGroupMembers", "get_group_members")
    GROUP_PATHS = ("group.members",)
    MARKUP_CALLS = ("getChatMarkup", "get_chat_markup")
    MARKUP_PATHS = ("chat_markup", "chatMarkup")
    PROMPT_SETTER_NAMES = ("setExtensionPrompt", "set_extension_prompt")
    EVENT_BUS_PATHS = ("eventSource", "events", "event_source")
    OBSERVER_PATHS = ("chatObserver", "chat_observer")

    def __init__(self, context: Any) -> None:
        self.context = context

    def _first_path(self, paths: Sequence[str]) -> Any:
        for path in paths:
            with contextlib.suppress(Exception):
                value = _lookup_path(self.context, path)
                if value is not None:
                    return value
        return None

    def conversation_id(self) -> str | None:
        value = _call_first(self.context, self.CONVERSATION_ID_CALLS)
        if value is None:
            value = self._first_path(self.CONVERSATION_ID_PATHS)
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def message_log(self) -> Sequence[Any]:
        for path in self.MESSAGE_LOG_PATHS:
            with contextlib.suppress(Exception):
                value = _lookup_path(self.context, path)
                if isinstance(value, (list, tuple)):
                    return value
        return []

    def current_character(self) -> Any:
        value = _call_first(self.context, self.CHARACTER_CALLS)
        if value is None:
            value = self._first_path(self.CHARACTER_PATHS)
        return value

    def group_members(self) -> Sequence[Any]:
        value = _call_first(self.context, self.GROUP_CALLS)
        if value is None:
            value = self._first_path(self.GROUP_PATHS)
        if isinstance(value, (list, tuple)):
            return value
        return []

    def display_markup(self) -> str:
        value = _call_first(self.context, self.MARKUP_CALLS)
        if value is None:
            value = self._first_path(self.MARKUP_PATHS)
        return value if isinstance(value, str) else ""

    def slot_type(self, default: str) -> Any:
        value = self._first_path(("extension_prompt_types.IN_CHAT",))
        return default if value is None else value

    def prompt_setter(self) -> Callable[..., Any] | None:
        for name in self.PROMPT_SETTER_NAMES:
            fn = _lookup(self.context, name)
            if callable(fn):
                return fn
        return None

    def event_bus(self) -> Any:
        return self._first_path(self.EVENT_BUS_PATHS)

    def watch_structure(self, callback: StructureCallback) -> bool:
        observer = self._first_path(self.OBSERVER_PATHS)
        observe = _lookup(observer, "observe")
        if not callable(observe):
            return False
        try:
            observe(callback)
        except Exception as exc:
            logger.debug("Chat structure observer rejected callback: %s", exc)
            return False
        return True
