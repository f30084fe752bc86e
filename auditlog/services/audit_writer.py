"""
Fire-and-forget append path for audit records.

Business services hand entries to the writer and carry on: entries go
through a bounded queue to one worker thread that writes each in its own
session. Any failure (full queue, serialization, database) is logged and
swallowed, never raised back to the caller. Sensitive fields are masked
before an entry is queued, so raw values never reach the table.

record_now() is the compliance path: it writes synchronously in a fresh
session and commits on its own, so the record survives even if the caller's
transaction is later rolled back.
"""
import logging
import queue
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from fastapi.encoders import jsonable_encoder

from auditlog import config
from auditlog.database import SessionLocal
from auditlog.models.audit import AuditRecord
from auditlog.models.enums import AuditAction
from auditlog.services.field_registry import FieldRegistry, default_registry

logger = logging.getLogger("auditlog.writer")

ActorNameResolver = Callable[[str], Optional[str]]


@dataclass
class AuditEntry:
    """An append request waiting for the worker."""
    entity_type: str
    entity_id: Optional[str]
    action: str
    old_snapshot: Optional[Dict[str, Any]]
    new_snapshot: Optional[Dict[str, Any]]
    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    correlation_id: Optional[str] = None
    created_at: Optional[datetime] = None


def to_snapshot(value: Any) -> Optional[Dict[str, Any]]:
    """Convert an entity, model or mapping into a JSON-safe field map."""
    if value is None:
        return None
    if isinstance(value, str):
        return {"value": value}
    try:
        if hasattr(value, "__table__"):
            # SQLAlchemy model: snapshot its mapped columns
            value = {c.name: getattr(value, c.name) for c in value.__table__.columns}
        encoded = jsonable_encoder(value)
    except Exception as exc:
        logger.warning("Failed to convert %s to snapshot: %s", type(value).__name__, exc)
        return {"value": str(value)}
    if isinstance(encoded, dict):
        return encoded
    return {"value": encoded}


class AuditWriter:
    """Bounded queue plus a single background worker writing audit records."""

    def __init__(
        self,
        session_factory=SessionLocal,
        maxsize: int = config.APPEND_QUEUE_SIZE,
        actor_name_resolver: Optional[ActorNameResolver] = None,
        registry: FieldRegistry = default_registry,
    ):
        self.session_factory = session_factory
        self.actor_name_resolver = actor_name_resolver
        self.registry = registry
        self._queue: "queue.Queue[Optional[AuditEntry]]" = queue.Queue(maxsize=max(1, maxsize))
        self._worker: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        # Separate from _lock: stop() holds _lock while joining the worker
        self._counter_lock = threading.Lock()
        self.written = 0
        self.failed = 0
        self.dropped = 0

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._worker = threading.Thread(
                target=self._drain, name="audit-writer", daemon=True
            )
            self._worker.start()
            logger.info("Audit writer started")

    def stop(self, timeout: float = 5.0) -> None:
        with self._lock:
            if not self.running:
                return
            self._queue.put(None)  # Sentinel: finish pending entries, then exit
            self._worker.join(timeout)
            self._worker = None
            logger.info(
                "Audit writer stopped: written=%s failed=%s dropped=%s",
                self.written, self.failed, self.dropped
            )

    def join(self) -> None:
        """Block until every queued entry has been processed."""
        self._queue.join()

    def _count(self, counter: str) -> None:
        with self._counter_lock:
            setattr(self, counter, getattr(self, counter) + 1)

    def record(
        self,
        entity_type: str,
        entity_id: Any,
        action: str,
        old_snapshot: Any = None,
        new_snapshot: Any = None,
        actor_id: Optional[str] = None,
        actor_name: Optional[str] = None,
        correlation_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> bool:
        """Queue an audit record. Returns False when it had to be dropped."""
        try:
            entry = self._build_entry(
                entity_type, entity_id, action, old_snapshot, new_snapshot,
                actor_id, actor_name, correlation_id, ip_address, user_agent
            )
            self._queue.put_nowait(entry)
            return True
        except queue.Full:
            self._count("dropped")
            logger.warning(
                "Audit queue full; dropping %s %s#%s", action, entity_type, entity_id
            )
        except Exception:
            self._count("failed")
            logger.exception(
                "Failed to queue audit record: %s %s#%s", action, entity_type, entity_id
            )
        return False

    def record_create(self, entity_type: str, entity_id: Any, new_snapshot: Any, **context) -> bool:
        return self.record(entity_type, entity_id, AuditAction.CREATE.value, None, new_snapshot, **context)

    def record_update(self, entity_type: str, entity_id: Any, old_snapshot: Any, new_snapshot: Any, **context) -> bool:
        return self.record(entity_type, entity_id, AuditAction.UPDATE.value, old_snapshot or {}, new_snapshot or {}, **context)

    def record_delete(self, entity_type: str, entity_id: Any, old_snapshot: Any, **context) -> bool:
        return self.record(entity_type, entity_id, AuditAction.DELETE.value, old_snapshot, None, **context)

    def record_now(
        self,
        entity_type: str,
        entity_id: Any,
        action: str,
        old_snapshot: Any = None,
        new_snapshot: Any = None,
        actor_id: Optional[str] = None,
        actor_name: Optional[str] = None,
        correlation_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> bool:
        """Write immediately in an independent session. Returns success."""
        try:
            entry = self._build_entry(
                entity_type, entity_id, action, old_snapshot, new_snapshot,
                actor_id, actor_name, correlation_id, ip_address, user_agent
            )
        except Exception:
            self._count("failed")
            logger.exception(
                "Failed to build audit record: %s %s#%s", action, entity_type, entity_id
            )
            return False
        return self._write(entry)

    def _build_entry(
        self,
        entity_type, entity_id, action, old_snapshot, new_snapshot,
        actor_id, actor_name, correlation_id, ip_address, user_agent
    ) -> AuditEntry:
        action = AuditAction(action).value
        old = to_snapshot(old_snapshot)
        new = to_snapshot(new_snapshot)

        # Snapshot shape per action
        if action == AuditAction.CREATE.value:
            old = None
        elif action == AuditAction.DELETE.value:
            new = None
        else:
            old = old if old is not None else {}
            new = new if new is not None else {}

        return AuditEntry(
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            action=action,
            old_snapshot=self.registry.mask_snapshot(entity_type, old),
            new_snapshot=self.registry.mask_snapshot(entity_type, new),
            actor_id=str(actor_id) if actor_id is not None else None,
            actor_name=actor_name,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else user_agent,
            correlation_id=correlation_id,
            created_at=datetime.utcnow(),
        )

    def _resolve_actor_name(self, entry: AuditEntry) -> Optional[str]:
        if entry.actor_name or entry.actor_id is None or self.actor_name_resolver is None:
            return entry.actor_name
        try:
            return self.actor_name_resolver(entry.actor_id)
        except Exception:
            logger.exception("Actor name lookup failed for actor_id=%s", entry.actor_id)
            return None

    def _write(self, entry: AuditEntry) -> bool:
        db = None
        try:
            db = self.session_factory()
            record = AuditRecord(
                entity_type=entry.entity_type,
                entity_id=entry.entity_id,
                action=entry.action,
                old_snapshot=entry.old_snapshot,
                new_snapshot=entry.new_snapshot,
                actor_id=entry.actor_id,
                actor_name=self._resolve_actor_name(entry),
                ip_address=entry.ip_address,
                user_agent=entry.user_agent,
                correlation_id=entry.correlation_id,
                created_at=entry.created_at or datetime.utcnow(),
            )
            db.add(record)
            db.commit()
            self._count("written")
            logger.debug(
                "Audit record written: %s %s#%s by %s correlation_id=%s",
                entry.action, entry.entity_type, entry.entity_id,
                entry.actor_id, entry.correlation_id
            )
            return True
        except Exception:
            if db is not None:
                db.rollback()
            self._count("failed")
            logger.exception(
                "Failed to write audit record: %s %s#%s",
                entry.action, entry.entity_type, entry.entity_id
            )
            return False
        finally:
            if db is not None:
                db.close()

    def _drain(self) -> None:
        while True:
            entry = self._queue.get()
            try:
                if entry is None:
                    return
                self._write(entry)
            finally:
                self._queue.task_done()


audit_writer = AuditWriter()
