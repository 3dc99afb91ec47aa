"""
Vault Auto-Lock — inactivity timer that locks the session.

One ``asyncio.TimerHandle`` is owned by the timer at any time: every
activity signal cancels and replaces it. When the countdown expires the
lock callback fires exactly once and the timer goes dormant until it is
re-armed on the next unlock.
"""
import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger("notosha.vault")

AUTO_LOCK_TIMEOUT = 5 * 60  # seconds


class AutoLockTimer:
    """Cooperative inactivity timer bound to an event loop.

    Args:
        on_lock: Synchronous callback invoked on expiry or ``lock_now``.
        timeout: Seconds of inactivity before locking.
        enabled: When False no wakeups are scheduled at all.
        loop: Event loop to schedule on; defaults to whichever loop is
            running at each scheduling call.
    """

    def __init__(
        self,
        on_lock: Callable[[], None],
        timeout: float = AUTO_LOCK_TIMEOUT,
        enabled: bool = True,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        if timeout <= 0:
            raise ValueError(f"Auto-lock timeout must be positive, got {timeout}")
        self._on_lock = on_lock
        self._timeout = float(timeout)
        self._enabled = enabled
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._handle_loop: Optional[asyncio.AbstractEventLoop] = None
        self._armed = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def armed(self) -> bool:
        return self._armed

    @property
    def pending(self) -> bool:
        """True if a wakeup is currently scheduled."""
        return self._handle is not None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = bool(value)
        if not self._enabled:
            self._cancel()
        elif self._armed:
            self._schedule()

    # ------------------------------------------------------------------
    # Scheduling helpers
    # ------------------------------------------------------------------

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            self._handle_loop = None

    def _schedule(self) -> None:
        loop = self._get_loop()
        self._cancel()
        self._handle = loop.call_later(self._timeout, self._expire)
        self._handle_loop = loop

    def _expire(self) -> None:
        self._handle = None
        self._handle_loop = None
        if not self._armed:
            return
        self._armed = False
        logger.info("Auto-lock after %.0fs of inactivity", self._timeout)
        self._on_lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def arm(self) -> None:
        """Start the countdown; called when the session unlocks."""
        if self._enabled:
            self._schedule()
        self._armed = True

    def touch(self) -> None:
        """Record user activity and restart the countdown."""
        if not (self._armed and self._enabled):
            return
        self._schedule()

    reset = touch

    def disarm(self) -> None:
        """Stop the countdown without firing the callback."""
        self._armed = False
        self._cancel()

    def lock_now(self) -> None:
        """Cancel the countdown and fire the lock callback immediately."""
        self.disarm()
        self._on_lock()

    def time_until_lock(self) -> float:
        """Seconds remaining before auto-lock (0 if dormant or disabled)."""
        if self._handle is None or self._handle_loop is None:
            return 0.0
        return max(0.0, self._handle.when() - self._handle_loop.time())
