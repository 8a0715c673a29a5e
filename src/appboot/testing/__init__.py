"""
Test support: per-test runtime factories and captured boot logger output.

With the ``appboot.testing.plugin`` pytest plugin enabled, the
``app_factory`` fixture hands each test a ``TestFactory`` whose runtimes are
shut down when the test ends:

```python
def test_greeting(app_factory: TestFactory) -> None:
    io = TestIO.no_trace()
    outcome = app_factory.app("--hello").module(HelloModule).boot_logger(io.boot_logger).run()
    assert outcome.is_success
    assert io.stdout.strip() == "Hello"
```
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Final, Mapping, Self, final, override

from appboot.command import CommandOutcome
from appboot.config.properties import PropertyStore
from appboot.log import BootLogger, DefaultBootLogger
from appboot.runtime import Runtime, RuntimeBuilder

_logger: Final[logging.Logger] = logging.getLogger(__name__)


@final
@dataclass(frozen=True, kw_only=True, slots=True)
class TestIO:
    """A boot logger writing into in-memory buffers."""

    __test__ = False

    boot_logger: BootLogger
    stdout_buffer: io.StringIO
    stderr_buffer: io.StringIO

    @classmethod
    def of(cls, *, trace: bool) -> Self:
        stdout_buffer = io.StringIO()
        stderr_buffer = io.StringIO()
        return cls(
            boot_logger=DefaultBootLogger(trace=trace, stdout=stdout_buffer, stderr=stderr_buffer),
            stdout_buffer=stdout_buffer,
            stderr_buffer=stderr_buffer,
        )

    @classmethod
    def no_trace(cls) -> Self:
        return cls.of(trace=False)

    @classmethod
    def trace(cls) -> Self:
        return cls.of(trace=True)

    @property
    def stdout(self) -> str:
        return self.stdout_buffer.getvalue()

    @property
    def stderr(self) -> str:
        return self.stderr_buffer.getvalue()


class TestRuntimeBuilder(RuntimeBuilder):
    """
    A ``RuntimeBuilder`` whose runtimes are tracked by a ``TestFactory``.

    Runtimes built here are isolated from process state: unless a property
    store or an environment is injected, they see neither
    ``system_properties`` nor ``os.environ``.
    """

    __test__ = False

    def __init__(self, factory: TestFactory, *args: str) -> None:
        super().__init__(*args)
        self._factory = factory

    @override
    def _default_properties(self) -> Mapping[str, str]:
        return PropertyStore()

    @override
    def _default_environment(self) -> Mapping[str, str]:
        return {}

    @override
    def _default_boot_logger(self, properties: Mapping[str, str]) -> BootLogger:
        return DefaultBootLogger(trace=False)

    @override
    def create_runtime(self) -> Runtime:
        runtime = super().create_runtime()
        self._factory.track(runtime)
        return runtime

    def run(self) -> CommandOutcome:
        """Create the runtime and run it; the factory shuts it down later."""
        return self.create_runtime().run()


class TestFactory:
    """Creates runtimes for one test and shuts all of them down at the end."""

    __test__ = False

    def __init__(self) -> None:
        self._runtimes: list[Runtime] = []

    def app(self, *args: str) -> TestRuntimeBuilder:
        return TestRuntimeBuilder(self, *args)

    def track(self, runtime: Runtime) -> None:
        self._runtimes.append(runtime)

    @property
    def runtimes(self) -> tuple[Runtime, ...]:
        return tuple(self._runtimes)

    def shutdown(self) -> None:
        runtimes, self._runtimes = self._runtimes, []
        _logger.debug("Shutting down %d test runtimes", len(runtimes))
        for runtime in reversed(runtimes):
            runtime.shutdown()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()


__all__ = ["TestFactory", "TestIO", "TestRuntimeBuilder"]
