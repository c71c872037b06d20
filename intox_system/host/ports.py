from __future__ import annotations

from typing import Any, Callable, Protocol, Sequence, runtime_checkable


StructureCallback = Callable[[], None]


@runtime_checkable
class HostPort(Protocol):
    """Capabilities the core needs from the host; any accessor may come back empty."""

    def conversation_id(self) -> str | None: ...

    def message_log(self) -> Sequence[Any]: ...

    def current_character(self) -> Any: ...

    def group_members(self) -> Sequence[Any]: ...

    def display_markup(self) -> str: ...

    def slot_type(self, default: str) -> Any: ...

    def prompt_setter(self) -> Callable[..., Any] | None: ...

    def event_bus(self) -> Any: ...

    def watch_structure(self, callback: StructureCallback) -> bool: ...
