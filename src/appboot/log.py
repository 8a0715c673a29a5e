"""
Boot logger: the user-facing output channels of a runtime.

A ``BootLogger`` writes newline-terminated records to two sinks (stdout and
stderr) and carries an internal ``trace`` channel for framework diagnostics.
It does not depend on the ``logging`` configuration of the application and
is usable before anything else is set up.
"""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
from typing import Callable, Final, TextIO, override

_logger: Final[logging.Logger] = logging.getLogger(__name__)


class BootLogger(ABC):
    """Dual-stream text sink with an internal diagnostic channel."""

    @abstractmethod
    def trace(self, message: str | Callable[[], str]) -> None:
        """
        Emit a framework diagnostic.

        Suppliers are only called when tracing is enabled.
        """

    @abstractmethod
    def stdout(self, message: str) -> None: ...

    @abstractmethod
    def stderr(self, message: str) -> None: ...


class DefaultBootLogger(BootLogger):
    """
    BootLogger writing to text streams.

    Sinks left as ``None`` resolve to the current ``sys.stdout`` and
    ``sys.stderr`` at write time. A sink that fails drops the message and
    leaves a note on the trace channel.
    """

    def __init__(
        self,
        trace: bool = False,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        self._trace_enabled = trace
        self._stdout = stdout
        self._stderr = stderr

    @property
    def trace_enabled(self) -> bool:
        return self._trace_enabled

    @override
    def trace(self, message: str | Callable[[], str]) -> None:
        if not self._trace_enabled:
            return
        text = message() if callable(message) else message
        self._write(self._stderr_sink(), text, channel="trace")

    @override
    def stdout(self, message: str) -> None:
        if not self._write(self._stdout_sink(), message, channel="stdout"):
            self.trace(lambda: f"Dropped a stdout message: {message!r}")

    @override
    def stderr(self, message: str) -> None:
        if not self._write(self._stderr_sink(), message, channel="stderr"):
            self.trace(lambda: f"Dropped a stderr message: {message!r}")

    def _stdout_sink(self) -> TextIO:
        return self._stdout if self._stdout is not None else sys.stdout

    def _stderr_sink(self) -> TextIO:
        return self._stderr if self._stderr is not None else sys.stderr

    @staticmethod
    def _write(sink: TextIO, message: str, *, channel: str) -> bool:
        try:
            sink.write(f"{message}\n")
            sink.flush()
        except Exception as e:
            _logger.debug("Boot logger %s sink failed: %s", channel, e)
            return False
        return True
