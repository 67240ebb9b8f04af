from __future__ import annotations

import sys
from typing import Any, TextIO

from .output import OutputSink


def _disable_echo(stdin: TextIO) -> Any | None:
    if not stdin.isatty():
        return None
    import termios

    fd = stdin.fileno()
    saved = termios.tcgetattr(fd)
    attrs = termios.tcgetattr(fd)
    attrs[3] &= ~termios.ECHO
    termios.tcsetattr(fd, termios.TCSANOW, attrs)
    return saved


def _restore_echo(stdin: TextIO, saved: Any | None) -> None:
    if saved is None:
        return
    import termios

    termios.tcsetattr(stdin.fileno(), termios.TCSANOW, saved)


def prompt_for(label: str, output: OutputSink, stdin: TextIO | None = None) -> str:
    """
    Read one line from the terminal without echoing it.

    Ctrl-C exits the process quietly; echo is restored first either way.
    """
    stdin = stdin if stdin is not None else sys.stdin
    saved = _disable_echo(stdin)
    try:
        output.print(f"{label}: ")
        line = stdin.readline()
        output.puts()
        return line.rstrip("\r\n")
    except KeyboardInterrupt:
        raise SystemExit(0) from None
    finally:
        _restore_echo(stdin, saved)
