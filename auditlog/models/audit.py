"""
Audit record model - one atomic change to one business entity.

Records are written by the business services through the audit writer and
read back by the grouping, pagination and diff services. They are never
edited; only the retention sweep deletes them.
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, JSON
from auditlog.database import Base


class AuditRecord(Base):
    """
    Immutable record of who changed what, and when.

    Invariants:
    - Once written, never edited
    - CREATE has no old_snapshot, DELETE has no new_snapshot
    - UPDATE carries both snapshots (possibly empty)
    - created_at is the only ordering key
    """
    __tablename__ = "audit_records"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    entity_type = Column(String(100), nullable=False, index=True)  # e.g., "Product", "Sale"
    entity_id = Column(String(64), nullable=True, index=True)
    action = Column(String(20), nullable=False, index=True)  # CREATE, UPDATE, DELETE

    # Field-name -> value maps before and after the change
    old_snapshot = Column(JSON, nullable=True)
    new_snapshot = Column(JSON, nullable=True)

    # Who made the change; actor_name is denormalized at write time
    actor_id = Column(String(64), nullable=True, index=True)
    actor_name = Column(String(255), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)

    # Shared by every record written for one logical operation
    correlation_id = Column(String(64), nullable=True, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def __repr__(self):
        return (
            f"<AuditRecord id={self.id} {self.action} {self.entity_type}#{self.entity_id} "
            f"at={self.created_at}>"
        )
