"""Rest timer and per-set exercise timer.

Both timers only remember when they were started and for how long.  Every
reading is recomputed from :func:`time.time`, so a process that was
suspended in between still reports the correct values when it resumes.
"""

from __future__ import annotations

import logging
import math
import time


class RestTimer:
    """Countdown between sets.  Starting a new rest replaces the old one."""

    def __init__(self):
        self.started_at: float | None = None
        self.total: float = 0
        self._finish_reported = False

    def start(self, seconds: float) -> None:
        self.started_at = time.time()
        self.total = max(0, seconds)
        self._finish_reported = False

    def stop(self) -> None:
        self.started_at = None
        self.total = 0
        self._finish_reported = False

    def adjust(self, seconds: float) -> None:
        """Extend (or shorten with a negative value) the current rest period."""

        if self.started_at is None:
            return
        now = time.time()
        target = max(self.started_at + self.total, now) + seconds
        target = max(target, now)
        self.total = target - self.started_at
        if target > now:
            self._finish_reported = False

    @property
    def elapsed(self) -> float:
        if self.started_at is None:
            return 0.0
        return min(max(0.0, time.time() - self.started_at), self.total)

    @property
    def remaining(self) -> float:
        """Seconds left; never negative."""
        if self.started_at is None:
            return 0.0
        return max(0.0, self.total - (time.time() - self.started_at))

    @property
    def remaining_seconds(self) -> int:
        return int(math.ceil(self.remaining))

    @property
    def running(self) -> bool:
        return self.started_at is not None and self.remaining > 0

    def poll_finished(self) -> bool:
        """Return ``True`` once, on the first poll after the countdown ran out."""

        if self.started_at is None or self._finish_reported or self.remaining > 0:
            return False
        self._finish_reported = True
        return True

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at,
            "total": self.total,
            "finish_reported": self._finish_reported,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RestTimer":
        timer = cls()
        timer.started_at = data.get("started_at")
        timer.total = data.get("total", 0)
        timer._finish_reported = data.get("finish_reported", False)
        return timer


class ExerciseTimer:
    """Countdown or stopwatch bound to a single set.

    ``target`` of ``None`` means stopwatch mode.  Starting for the set that
    is already running resumes it unchanged; starting for another set stops
    the running timer first.
    """

    def __init__(self):
        self.set_id: str | None = None
        self.started_at: float | None = None
        self.target: float | None = None

    @property
    def is_stopwatch(self) -> bool:
        return self.target is None

    def start(self, set_id: str, seconds: float | None = None) -> bool:
        """Start timing ``set_id``; return ``False`` if it was already running."""

        if self.set_id == set_id and self.running:
            return False
        if self.set_id is not None and self.set_id != set_id:
            logging.debug("Stopping exercise timer for set %s", self.set_id)
            self.stop()
        self.set_id = set_id
        self.started_at = time.time()
        self.target = None if not seconds or seconds <= 0 else seconds
        return True

    @property
    def elapsed(self) -> float:
        if self.started_at is None:
            return 0.0
        elapsed = max(0.0, time.time() - self.started_at)
        if self.target is not None:
            elapsed = min(elapsed, self.target)
        return elapsed

    @property
    def remaining(self) -> float | None:
        if self.started_at is None or self.target is None:
            return None
        return max(0.0, self.target - self.elapsed)

    @property
    def running(self) -> bool:
        if self.started_at is None:
            return False
        return self.target is None or self.remaining > 0

    def stop(self) -> int | None:
        """Clear the binding and return elapsed whole seconds."""

        if self.started_at is None:
            return None
        if self.target is None:
            elapsed = self.elapsed
        else:
            elapsed = self.target - self.remaining
        self.set_id = None
        self.started_at = None
        self.target = None
        return int(round(elapsed))

    def to_dict(self) -> dict:
        return {"set_id": self.set_id, "started_at": self.started_at, "target": self.target}

    @classmethod
    def from_dict(cls, data: dict) -> "ExerciseTimer":
        timer = cls()
        timer.set_id = data.get("set_id")
        timer.started_at = data.get("started_at")
        timer.target = data.get("target")
        return timer
