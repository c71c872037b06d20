from .state_block import STATE_BLOCK_HEADER_LINES, build_character_line, synthesize

__all__ = ["STATE_BLOCK_HEADER_LINES", "build_character_line", "synthesize"]
