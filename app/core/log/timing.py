"""Timing helpers that log the duration of an operation and its database round-trips."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from time import perf_counter
from typing import Iterator, Optional

from sqlalchemy.orm import Session

_TRACKED_METHODS = ("execute", "scalar", "scalars")


class DatabaseCallTracker:
    """Count ``execute``/``scalar``/``scalars`` calls made on a session.

    The session methods are shadowed by instance attributes while tracking and
    restored by :meth:`release`.
    """

    def __init__(self) -> None:
        self.call_count = 0
        self._session: Session | None = None

    def attach(self, session: Session) -> None:
        if getattr(session, "_call_tracker", None) is not None:
            return
        for name in _TRACKED_METHODS:
            original = getattr(session, name)

            def tracked(*args, _original=original, **kwargs):
                self.call_count += 1
                return _original(*args, **kwargs)

            setattr(session, name, tracked)
        session._call_tracker = self  # type: ignore[attr-defined]
        self._session = session

    def release(self) -> None:
        session = self._session
        if session is None:
            return
        for name in _TRACKED_METHODS:
            session.__dict__.pop(name, None)
        session.__dict__.pop("_call_tracker", None)
        self._session = None


@dataclass
class _Timer:
    label: str
    logger: logging.Logger
    level: int
    unit: str
    expected_total: Optional[int]
    count: int = 0
    start: float = field(default_factory=perf_counter)
    db_call_tracker: Optional[DatabaseCallTracker] = None

    def add(self, amount: int = 1) -> None:
        self.count += amount

    def set_total(self, total: int) -> None:
        self.expected_total = total

    @property
    def elapsed(self) -> float:
        return perf_counter() - self.start

    def _suffix(self) -> str:
        suffix = ""
        total = self.expected_total if self.expected_total is not None else self.count
        if total:
            suffix += f" ({total:,} {self.unit})"
        calls = self.db_call_tracker.call_count if self.db_call_tracker else 0
        if calls:
            suffix += f" ({calls:,} DB calls)"
        return suffix

    def finish(self, success: bool = True) -> None:
        if success:
            self.logger.log(
                self.level, f"{self.label} completed in {self.elapsed:.3f}s{self._suffix()}"
            )
        else:
            self.logger.error(f"{self.label} failed after {self.elapsed:.3f}s{self._suffix()}")


@contextmanager
def timeit(
    label: str,
    *,
    logger: Optional[logging.Logger] = None,
    level: int = logging.INFO,
    unit: str = "rows",
    total: Optional[int] = None,
    track_db_calls: bool = False,
    session: Optional[Session] = None,
) -> Iterator[_Timer]:
    """Time the wrapped block and log the outcome.

    Args:
        label: Description of the operation being timed.
        logger: Logger to write to (defaults to ``charts.timer``).
        level: Level used for the success message.
        unit: Unit shown next to the row count.
        total: Expected row count, can also be set later with ``set_total``.
        track_db_calls: Count database round-trips made on ``session``.
        session: Session to track, required when ``track_db_calls`` is set.
    """
    if track_db_calls and session is None:
        raise ValueError("session parameter is required when track_db_calls=True")

    tracker = DatabaseCallTracker() if track_db_calls else None
    timer = _Timer(
        label=label,
        logger=logger or logging.getLogger("charts.timer"),
        level=level,
        unit=unit,
        expected_total=total,
        db_call_tracker=tracker,
    )
    if tracker is not None and session is not None:
        tracker.attach(session)
    try:
        yield timer
    except Exception:
        timer.finish(success=False)
        raise
    else:
        timer.finish(success=True)
    finally:
        if tracker is not None:
            tracker.release()
