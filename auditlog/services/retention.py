"""
Retention for the audit trail.

Deleting by age is the only way audit records ever leave the table. The
sweep only touches records far outside any live query window, so it needs
no coordination with readers or the writer.
"""
import logging
import threading
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from auditlog.database import SessionLocal
from auditlog.services.store import AuditRecordStore

logger = logging.getLogger("auditlog.retention")


def purge_older_than(db: Session, cutoff: datetime) -> int:
    """Delete records created before cutoff and return how many went."""
    deleted = AuditRecordStore(db).purge_older_than(cutoff)
    logger.info("Purged %s audit records older than %s", deleted, cutoff.isoformat())
    return deleted


def cleanup_old_records(db: Session, days_to_keep: int, now: Optional[datetime] = None) -> int:
    if days_to_keep < 1:
        raise ValueError(f"days_to_keep must be >= 1, got {days_to_keep}")
    cutoff = (now or datetime.utcnow()) - timedelta(days=days_to_keep)
    return purge_older_than(db, cutoff)


class RetentionSweeper:
    """Runs cleanup_old_records every interval on a daemon thread."""

    def __init__(self, days_to_keep: int, interval_seconds: float, session_factory=SessionLocal):
        self.days_to_keep = days_to_keep
        self.interval_seconds = interval_seconds
        self.session_factory = session_factory
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="audit-retention", daemon=True)
        self._thread.start()
        logger.info(
            "Retention sweeper started: keep=%s days, every %ss",
            self.days_to_keep, self.interval_seconds
        )

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def sweep_once(self) -> int:
        db = None
        try:
            db = self.session_factory()
            return cleanup_old_records(db, self.days_to_keep)
        except Exception:
            if db is not None:
                db.rollback()
            logger.exception("Retention sweep failed")
            return 0
        finally:
            if db is not None:
                db.close()

    def _run(self) -> None:
        while not self._stop.is_set():
            self.sweep_once()
            self._stop.wait(self.interval_seconds)
