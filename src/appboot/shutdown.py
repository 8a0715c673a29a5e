"""Release of resources acquired while a runtime was alive."""

from __future__ import annotations

import logging
from typing import Callable, Final

from appboot.log import BootLogger

_logger: Final[logging.Logger] = logging.getLogger(__name__)


class ShutdownManager:
    """
    Runs shutdown hooks in reverse registration order.

    Inject it to register a hook for anything that must be released when
    the runtime shuts down:

        def __init__(self, shutdown_manager: ShutdownManager) -> None:
            self.pool = open_pool()
            shutdown_manager.add_shutdown_hook(self.pool.close)
    """

    def __init__(self, boot_logger: BootLogger) -> None:
        self._boot_logger = boot_logger
        self._hooks: list[Callable[[], object]] = []

    def add_shutdown_hook(self, hook: Callable[[], object]) -> None:
        self._hooks.append(hook)

    def shutdown(self) -> None:
        """Run and forget all hooks; a failing hook does not stop the others."""
        hooks, self._hooks = self._hooks, []
        for hook in reversed(hooks):
            try:
                hook()
            except Exception as e:
                _logger.debug("Shutdown hook %r failed", hook, exc_info=True)
                self._boot_logger.stderr(f"Error during shutdown: {e}")
