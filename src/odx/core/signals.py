"""
InterruptSuppressor - Disables the default SIGINT behavior for the wrapper.

An interrupt sent to the process group (Ctrl+C) reaches the child too. The
child decides whether to terminate; the wrapper just keeps waiting, observes
the resulting exit status and still flushes its telemetry.

The handler is a Python callable, not SIG_IGN: an ignored disposition is
inherited across exec, a caught one is reset to the default in the child.
"""

import signal

import structlog

from ..errors import SignalHandlerError

logger = structlog.get_logger()


class InterruptSuppressor:
    """Replaces the SIGINT handler with a no-op until restore() is called.

    Attributes:
        interrupts: Number of SIGINTs received while installed.

    Usage:
        suppressor = InterruptSuppressor()
        try:
            status = run_child(...)
        finally:
            suppressor.restore()
    """

    def __init__(self) -> None:
        """Install the handler.

        Raises:
            SignalHandlerError: If the handler cannot be installed
                (e.g. not called from the main thread).
        """
        self.interrupts = 0
        try:
            self._previous = signal.signal(signal.SIGINT, self._handler)
        except (ValueError, OSError) as e:
            raise SignalHandlerError(f"could not install SIGINT handler: {e}") from e
        self._installed = True

        logger.debug("interrupt_suppressor.installed")

    def _handler(self, signum: int, frame) -> None:
        self.interrupts += 1
        logger.debug("interrupt_suppressor.interrupted", count=self.interrupts)

    @property
    def installed(self) -> bool:
        return self._installed

    def restore(self) -> None:
        """Restore the previous SIGINT handler. Safe to call twice."""
        if not self._installed:
            return
        # None means the previous handler was not installed from Python
        previous = self._previous if self._previous is not None else signal.SIG_DFL
        signal.signal(signal.SIGINT, previous)
        self._installed = False
        logger.debug("interrupt_suppressor.restored")
