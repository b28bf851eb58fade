"""
Settings that define the visual appearance of console and log output.
"""

## Emojis

EMOJI_WARN = "△"

EMOJI_ERROR = EMOJI_WARN + EMOJI_WARN

EMOJI_SAVED = "⩣"

EMOJI_CALL_BEGIN = "≫"

EMOJI_CALL_END = "≪"

EMOJI_TIMING = "⏱"

