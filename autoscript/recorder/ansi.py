"""Best-effort removal of terminal escape sequences from transcripts.

This is a pattern filter, not a terminal emulator: cursor movement,
overwritten lines and uncommon sequences are not interpreted, so the output
may still contain artefacts of what was drawn on screen.
"""

import re

# OSC: ESC ] ... terminated by BEL or ST (ESC \)
_OSC = rb"\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"
# CSI: ESC [ parameters intermediates final
_CSI = rb"\x1b\[[0-?]*[ -/]*[@-~]"
# Charset designation, e.g. ESC ( B
_CHARSET = rb"\x1b[()*+][0-9A-Za-z]"
# Remaining two-byte escapes (ESC =, ESC >, ESC M, ...)
_SHORT = rb"\x1b[0-9=>@-Z\\^_`a-z{|}~]"

_ESCAPE_RE = re.compile(b"|".join([_OSC, _CSI, _CHARSET, _SHORT]))
_CR_BEFORE_LF_RE = re.compile(rb"\r+\n")


def strip_ansi(data: bytes) -> bytes:
    """Strip escape sequences, bells and CR-before-LF from raw terminal output."""
    data = _ESCAPE_RE.sub(b"", data)
    data = data.replace(b"\x07", b"")
    return _CR_BEFORE_LF_RE.sub(b"\n", data)
