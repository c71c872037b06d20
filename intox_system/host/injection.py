from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger("intox_system.injection")

PromptSetter = Callable[..., Any]


@dataclass(slots=True, frozen=True)
class SlotPlacement:
    prompt_key: str
    slot_type: Any
    role: str


@dataclass(slots=True, frozen=True)
class InjectionResult:
    ok: bool
    strategy: str = ""
    error: str = ""


def _accepts(fn: PromptSetter, *args: Any) -> bool:
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        # Builtins and some proxies hide their signature; let the call decide.
        return True
    try:
        signature.bind(*args)
    except TypeError:
        return False
    return True


def _attempt(name: str, fn: PromptSetter, *args: Any) -> InjectionResult:
    if not _accepts(fn, *args):
        return InjectionResult(ok=False, strategy=name, error="signature mismatch")
    try:
        fn(*args)
    except Exception as exc:
        return InjectionResult(ok=False, strategy=name, error=f"{type(exc).__name__}: {exc}")
    return InjectionResult(ok=True, strategy=name)


def keyed_options_strategy(fn: PromptSetter, text: str, placement: SlotPlacement) -> InjectionResult:
    options = {"type": placement.slot_type, "role": placement.role}
    return _attempt("keyed_options", fn, placement.prompt_key, text, options)


def keyed_positional_strategy(fn: PromptSetter, text: str, placement: SlotPlacement) -> InjectionResult:
    return _attempt("keyed_positional", fn, placement.prompt_key, text, placement.slot_type, placement.role)


def bare_text_strategy(fn: PromptSetter, text: str, placement: SlotPlacement) -> InjectionResult:
    return _attempt("bare_text", fn, text, placement.slot_type)


DEFAULT_STRATEGIES = (
    keyed_options_strategy,
    keyed_positional_strategy,
    bare_text_strategy,
)


class InjectionAdapter:
    """Writes the state block into the host's single prompt slot.

    Every strategy addresses the same fixed key, so the host overwrites the
    previous block instead of stacking a new one. Strategies run richest call
    shape first; the first success wins. When none succeeds the call is a no-op.
    """

    def __init__(
        self,
        setter_provider: Callable[[], PromptSetter | None],
        placement_provider: Callable[[], SlotPlacement],
        strategies: tuple[Callable[[PromptSetter, str, SlotPlacement], InjectionResult], ...] = DEFAULT_STRATEGIES,
    ) -> None:
        self.setter_provider = setter_provider
        self.placement_provider = placement_provider
        self.strategies = strategies
        self.last_result: InjectionResult | None = None

    def inject(self, text: str) -> InjectionResult:
        try:
            setter = self.setter_provider()
            placement = self.placement_provider()
        except Exception as exc:
            logger.debug("Prompt slot lookup failed: %s", exc)
            setter = None
            placement = None
        if setter is None or placement is None:
            result = InjectionResult(ok=False, error="prompt setter unavailable")
            self.last_result = result
            return result

        failures: list[str] = []
        for strategy in self.strategies:
            result = strategy(setter, text, placement)
            if result.ok:
                self.last_result = result
                return result
            failures.append(f"{result.strategy}={result.error}")

        logger.debug("Prompt injection skipped, no compatible call shape (%s)", "; ".join(failures))
        result = InjectionResult(ok=False, error="no compatible call shape")
        self.last_result = result
        return result
