"""Rebuild readable scrollback from raw pseudo-terminal output.

Interactive installers redraw progress bars with carriage returns and
cursor movement. The audit log should read the way the session looked on a
live terminal once it settled, so :func:`normalize_output` replays those
overwrites in a single left-to-right pass:

* ``\\r\\n`` is a plain newline.
* ``\\r`` followed by cursor navigation (``ESC[A``, ``ESC[B``, ``ESC[C``,
  ``ESC[D``, ``ESC[K``, optionally with a count) drops the navigation and
  carries on right after it.
* ``\\r`` followed by the character just before it is a no-op redraw; both
  are dropped.
* Any other ``\\r`` rewinds to the start of the current line, so only the
  last write to a line survives.

After the pass, the ``ESC[A ... ESC[Ke`` redraw idiom collapses to a newline,
echoed commands (``$> ``) are shown in white and ``Exit status:`` lines in
cyan. Output never contains ``\\r``, so running it again changes nothing.
"""
import codecs
import re
from typing import Iterable

from mcp_env_provisioner.logging import ColorCodes

ESC = "\x1b"
CURSOR_NAVIGATION = re.compile(r"\x1b\[\d*[ABCDK]")
REDRAW_MARKER = re.compile(r"\x1b\[A.+?\x1b\[Ke")
COMMAND_LINE = re.compile(r"^\$> (.+)", re.MULTILINE)
EXIT_STATUS_LINE = re.compile(r"^(Exit status: .+)", re.MULTILINE | re.IGNORECASE)


def _decode(chunks: Iterable[bytes | str] | bytes | str) -> str:
    if isinstance(chunks, (bytes, str)):
        chunks = [chunks]
    # Multi-byte characters may straddle chunk boundaries
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    parts: list[str] = []
    for chunk in chunks:
        if isinstance(chunk, bytes):
            parts.append(decoder.decode(chunk))
        else:
            parts.append(decoder.decode(b"", final=True))
            decoder.reset()
            parts.append(chunk)
    parts.append(decoder.decode(b"", final=True))
    return "".join(parts)


def _replay_carriage_returns(text: str) -> str:
    out: list[str] = []
    line_start = 0
    i = 0
    length = len(text)
    while i < length:
        char = text[i]
        if char == "\n":
            out.append(char)
            line_start = len(out)
            i += 1
            continue
        if char != "\r":
            out.append(char)
            i += 1
            continue

        nxt = text[i + 1] if i + 1 < length else ""
        prev = text[i - 1] if i > 0 else ""
        if nxt == "\n":
            out.append("\n")
            line_start = len(out)
            i += 2
        elif nxt == ESC and CURSOR_NAVIGATION.match(text, i + 1):
            i += 1
            while (match := CURSOR_NAVIGATION.match(text, i)) is not None:
                i = match.end()
        elif nxt == prev:
            i += 2
        else:
            del out[line_start:]
            i += 1
    return "".join(out)


def normalize_output(chunks: Iterable[bytes | str] | bytes | str) -> str:
    """Normalize captured terminal output into canonical log text."""
    text = _decode(chunks)
    text = _replay_carriage_returns(text)
    text = REDRAW_MARKER.sub("\n", text)
    text = COMMAND_LINE.sub(
        lambda m: f"{ColorCodes.WHITE}$> {m.group(1)}{ColorCodes.RESET}", text
    )
    text = EXIT_STATUS_LINE.sub(
        lambda m: f"{ColorCodes.CYAN}{m.group(1)}{ColorCodes.RESET}", text
    )
    return text
