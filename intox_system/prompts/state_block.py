from __future__ import annotations

from typing import Any

from ..state.store import ChatBucket
from ..state.utils import clamp_attribute

_DEFAULTS: dict[str, Any] = {
    "header_lines": [
        "EXTENSION: Intox-system",
        "The following per-character states apply for this chat. Treat them as an always-on condition.",
        "Interpretation guidelines:",
        "- intoxication: 0-100 (0 sober, 100 extremely intoxicated).",
        "- arousal: 0-100 (0 none, 100 extremely aroused).",
        "- These are descriptive constraints; reflect them in behavior, dialogue, and narration appropriately.",
        "",
    ],
    "character_line_template": "{name}: intoxication={intoxication}, arousal={arousal}",
}

STATE_BLOCK_HEADER_LINES: tuple[str, ...] = tuple(_DEFAULTS["header_lines"])
CHARACTER_LINE_TEMPLATE = str(_DEFAULTS["character_line_template"])


def build_character_line(name: str, intoxication: object, arousal: object) -> str:
    return CHARACTER_LINE_TEMPLATE.format(
        name=name,
        intoxication=clamp_attribute(intoxication),
        arousal=clamp_attribute(arousal),
    )


def synthesize(bucket: ChatBucket) -> str:
    """Render a chat bucket as the injected state block.

    Used for both the preview and the delivered prompt. Characters are listed
    by case-insensitive display name, ties broken by key.
    """
    ordered = sorted(
        bucket.characters.items(),
        key=lambda item: ((item[1].name or "").casefold(), item[0]),
    )
    lines = list(STATE_BLOCK_HEADER_LINES)
    for _, record in ordered:
        lines.append(build_character_line(record.name, record.intoxication, record.arousal))
    return "\n".join(lines)
