from .adapters import ContextHostAdapter
from .injection import InjectionAdapter, InjectionResult, SlotPlacement
from .ports import HostPort

__all__ = [
    "ContextHostAdapter",
    "HostPort",
    "InjectionAdapter",
    "InjectionResult",
    "SlotPlacement",
]
