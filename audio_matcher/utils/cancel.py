"""Cooperative cancellation utilities for graceful shutdown.

The alignment engine never owns a cancel flag of its own: callers create a
``threading.Event`` per run and pass it down. This module wires such an event
to SIGINT/SIGTERM for the CLI.
"""

from __future__ import annotations

import logging
import signal
import threading

logger = logging.getLogger(__name__)


def install_signal_handlers(cancel_event: threading.Event) -> None:
    """Install signal handlers for SIGINT and SIGTERM that set *cancel_event*.

    Args:
        cancel_event: Event to set when a signal arrives.
    """

    def signal_handler(signum: int, frame: object) -> None:
        """Handle SIGINT/SIGTERM by setting the cancel event.

        Args:
            signum: Signal number received.
            frame: Current stack frame (unused).
        """
        sig_name = signal.Signals(signum).name
        logger.info(f"Received {sig_name}, requesting graceful cancellation")
        cancel_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    logger.debug("Signal handlers installed for SIGINT and SIGTERM")


def is_cancelled(cancel_event: threading.Event | None) -> bool:
    """Check if cancellation has been requested.

    Args:
        cancel_event: Event to check; ``None`` means the run is not cancellable.

    Returns:
        True if cancellation has been requested, False otherwise.
    """
    return cancel_event is not None and cancel_event.is_set()
