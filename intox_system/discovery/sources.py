from __future__ import annotations

from html.parser import HTMLParser
from typing import Any, Iterable, Protocol

from ..host.ports import HostPort

MESSAGE_AUTHOR_FIELDS = ("name", "character_name", "author", "from")


class DiscoverySource(Protocol):
    name: str

    def discover(self, host: HostPort) -> Iterable[str]: ...


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def _clean_name(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


class MessageLogSource:
    name = "message_log"

    def discover(self, host: HostPort) -> list[str]:
        names: list[str] = []
        for message in host.message_log() or []:
            for field_name in MESSAGE_AUTHOR_FIELDS:
                author = _clean_name(_field(message, field_name))
                if author:
                    names.append(author)
                    break
        return names


class RosterSource:
    name = "roster"

    def discover(self, host: HostPort) -> list[str]:
        names: list[str] = []
        character_name = _clean_name(_field(host.current_character(), "name"))
        if character_name:
            names.append(character_name)
        for member in host.group_members() or []:
            member_name = _clean_name(_field(member, "name"))
            if member_name:
                names.append(member_name)
        return names


_VOID_TAGS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "track", "wbr"}
)
_MESSAGE_CLASSES = frozenset({"mes", "message"})
_NAME_CLASSES = frozenset({"name", "ch_name"})


class _ChatMarkupParser(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.names: list[str] = []
        # (tag, opens a message block, captures a name)
        self._stack: list[tuple[str, bool, bool]] = []
        self._buffers: list[list[str]] = []

    def _inside_message(self) -> bool:
        return any(is_message for _, is_message, _ in self._stack)

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        attributes = {key: value or "" for key, value in attrs}
        author = attributes.get("data-author", "").strip()
        if author:
            self.names.append(author)
        if tag in _VOID_TAGS:
            return
        classes = set(attributes.get("class", "").split())
        is_name = not author and bool(classes & _NAME_CLASSES) and self._inside_message()
        self._stack.append((tag, bool(classes & _MESSAGE_CLASSES), is_name))
        if is_name:
            self._buffers.append([])

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        author = dict(attrs).get("data-author") or ""
        if author.strip():
            self.names.append(author.strip())

    def handle_endtag(self, tag: str) -> None:
        if not any(open_tag == tag for open_tag, _, _ in self._stack):
            return
        while self._stack:
            open_tag, _, is_name = self._stack.pop()
            if is_name and self._buffers:
                text = " ".join("".join(self._buffers.pop()).split())
                if text:
                    self.names.append(text)
            if open_tag == tag:
                break

    def handle_data(self, data: str) -> None:
        for buffer in self._buffers:
            buffer.append(data)


class MarkupSource:
    """Last-resort scrape of the rendered chat markup for author labels."""

    name = "markup"

    def discover(self, host: HostPort) -> list[str]:
        markup = host.display_markup()
        if not markup:
            return []
        parser = _ChatMarkupParser()
        parser.feed(markup)
        parser.close()
        return parser.names


def default_sources() -> list[DiscoverySource]:
    return [MessageLogSource(), RosterSource(), MarkupSource()]
