from .app import build_engine, configure_logging, start_engine
from .config import Settings
from .engine import IntoxEngine
from .prompts.state_block import synthesize

__all__ = ["IntoxEngine", "Settings", "build_engine", "configure_logging", "start_engine", "synthesize"]
