from __future__ import annotations

import io
import sys
from typing import TextIO


class OutputSink:
    """
    Write target that flushes after every write.

    Without an explicit stream the target is looked up on each write, so a
    patched or replaced sys.stdout / sys.stderr is always honoured.
    """

    def __init__(self, stream: TextIO | None = None, *, stderr: bool = False) -> None:
        self._stream = stream
        self._stderr = stderr

    @property
    def stream(self) -> TextIO:
        if self._stream is not None:
            return self._stream
        return sys.stderr if self._stderr else sys.stdout

    def print(self, *parts: str) -> None:
        stream = self.stream
        stream.write("".join(parts))
        stream.flush()

    def puts(self, *lines: str) -> None:
        stream = self.stream
        if not lines:
            stream.write("\n")
        for line in lines:
            stream.write(line if line.endswith("\n") else line + "\n")
        stream.flush()

    def getvalue(self) -> str:
        # Only meaningful for captured sinks.
        if isinstance(self._stream, io.StringIO):
            return self._stream.getvalue()
        return ""


STDOUT = OutputSink()
STDERR = OutputSink(stderr=True)


def captured() -> OutputSink:
    return OutputSink(io.StringIO())
