"""
Module: persistence.autosave

Purpose:
    Trailing-edge debounce of persistence calls, one single-shot timer per
    key (workbook id for marks, chapter id for notes). Re-arming a key
    before its timer fires restarts the window; when the timer finally
    fires the save callback reads and sends the CURRENT state, so a burst
    of edits costs one store call. A manual flush path bypasses the timer.

Key Classes:
    - AutosaveScheduler: schedule / flush_now / cancel / shutdown

Dependencies:
    - PySide6.QtCore (QObject, QTimer, Signal)

Used By:
    - session.GradeSession (one scheduler for marks, one for notes)

Failure Policy:
    A PersistenceError raised by the save callback is reported through
    saveFailed/statusChanged. Local state is not rolled back and the save
    is not retried; the next edit or a manual save tries again.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from ..config import DEFAULT_CONFIG, EngineConfig
from ..engine.errors import PersistenceError

logger = logging.getLogger(__name__)


class AutosaveScheduler(QObject):
    """
    Per-key debounced saver.

    Usage:
        scheduler = AutosaveScheduler(lambda wb_id: gateway.save_marks(wb_id, seqs[wb_id].snapshot()))
        scheduler.schedule("wb-1")   # starts the 700 ms window
        scheduler.schedule("wb-1")   # restarts it
        scheduler.flush_now("wb-1")  # or save immediately

    Signals:
        saved(str): key whose save succeeded
        saveFailed(str, str): key and error message of a failed save
        statusChanged(str): user-facing status line after each save attempt
    """

    saved = Signal(str)
    saveFailed = Signal(str, str)
    statusChanged = Signal(str)

    def __init__(
        self,
        save: Callable[[str], None],
        *,
        config: Optional[EngineConfig] = None,
        name: str = "autosave",
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.config = config or DEFAULT_CONFIG
        self.name = name
        self._save = save
        self._timers: Dict[str, QTimer] = {}

    @property
    def delay_ms(self) -> int:
        return self.config.autosave_delay_ms

    # ─────────────────────────────────────────────────────────────────────────
    # Scheduling
    # ─────────────────────────────────────────────────────────────────────────

    def schedule(self, key: str) -> None:
        """(Re)start the debounce window for key. No leading-edge save."""
        timer = self._timers.get(key)
        if timer is None:
            timer = QTimer(self)
            timer.setSingleShot(True)
            timer.timeout.connect(lambda k=key: self._fire(k))
            self._timers[key] = timer
        timer.start(self.delay_ms)

    def is_pending(self, key: str) -> bool:
        timer = self._timers.get(key)
        return timer is not None and timer.isActive()

    def pending_keys(self) -> List[str]:
        """Keys whose timer is still running."""
        return [k for k, t in self._timers.items() if t.isActive()]

    def cancel(self, key: str) -> bool:
        """
        Drop the pending save of key without saving.

        Returns:
            True if a save was pending
        """
        timer = self._timers.pop(key, None)
        if timer is None:
            return False
        was_pending = timer.isActive()
        timer.stop()
        timer.deleteLater()
        return was_pending

    # ─────────────────────────────────────────────────────────────────────────
    # Saving
    # ─────────────────────────────────────────────────────────────────────────

    def flush_now(self, key: str) -> bool:
        """
        Save key immediately, cancelling any pending timer.

        Returns:
            True if the save succeeded
        """
        self.cancel(key)
        return self._run(key)

    def shutdown(self, flush: bool = True) -> None:
        """
        Stop every timer; with flush, save each pending key first.

        Called when the owning session closes.
        """
        for key in self.pending_keys() if flush else []:
            self.flush_now(key)
        for key in list(self._timers):
            self.cancel(key)

    def _fire(self, key: str) -> None:
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.deleteLater()
        self._run(key)

    def _run(self, key: str) -> bool:
        try:
            self._save(key)
        except PersistenceError as e:
            logger.warning(f"{self.name}: save of {key} failed: {e}")
            self.saveFailed.emit(key, str(e))
            self.statusChanged.emit(self.config.autosave_failed_status)
            return False
        logger.debug(f"{self.name}: saved {key}")
        self.saved.emit(key)
        self.statusChanged.emit(self.config.saved_status)
        return True
