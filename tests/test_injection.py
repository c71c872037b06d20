from __future__ import annotations

import sys
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from intox_system.host.injection import InjectionAdapter, SlotPlacement  # noqa: E402

PLACEMENT = SlotPlacement(prompt_key="intox-system:state", slot_type="in_chat", role="system")


def _adapter(setter):  # type: ignore[no-untyped-def]
    return InjectionAdapter(setter_provider=lambda: setter, placement_provider=lambda: PLACEMENT)


class _KeyedSlots:
    def __init__(self) -> None:
        self.slots: dict[str, tuple[str, object]] = {}

    def set_prompt(self, key: str, text: str, options: dict) -> None:
        self.slots[key] = (text, options)


def test_options_signature_is_tried_first() -> None:
    host = _KeyedSlots()

    result = _adapter(host.set_prompt).inject("block")

    assert result.ok is True
    assert result.strategy == "keyed_options"
    assert host.slots == {"intox-system:state": ("block", {"type": "in_chat", "role": "system"})}


def test_positional_signature_used_when_options_shape_does_not_fit() -> None:
    calls: list[tuple] = []

    def set_prompt(key, text, position, role):  # type: ignore[no-untyped-def]
        calls.append((key, text, position, role))

    result = _adapter(set_prompt).inject("block")

    assert result.strategy == "keyed_positional"
    assert calls == [("intox-system:state", "block", "in_chat", "system")]


def test_falls_through_raising_calls_to_bare_text() -> None:
    calls: list[tuple] = []

    def set_prompt(*args):  # type: ignore[no-untyped-def]
        if len(args) != 2:
            raise TypeError("legacy host expects (text, type)")
        calls.append(args)

    result = _adapter(set_prompt).inject("block")

    assert result.ok is True
    assert result.strategy == "bare_text"
    assert calls == [("block", "in_chat")]


def test_missing_or_incompatible_setter_is_silent_noop() -> None:
    assert _adapter(None).inject("block").ok is False

    def always_fails(*args):  # type: ignore[no-untyped-def]
        raise RuntimeError("host busy")

    result = _adapter(always_fails).inject("block")
    assert result.ok is False

    def broken_provider():  # type: ignore[no-untyped-def]
        raise AttributeError("context gone")

    adapter = InjectionAdapter(setter_provider=broken_provider, placement_provider=lambda: PLACEMENT)
    assert adapter.inject("block").ok is False


def test_repeated_injection_leaves_single_block_with_last_text() -> None:
    host = _KeyedSlots()
    adapter = _adapter(host.set_prompt)

    for index in range(5):
        adapter.inject(f"state v{index}")

    assert len(host.slots) == 1
    assert host.slots["intox-system:state"][0] == "state v4"
