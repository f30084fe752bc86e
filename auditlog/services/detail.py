"""
Detail view of a single audit record.

Combines the raw record with its field diff, parsed device info and
navigation links. Link resolution is best effort: an unknown entity type or
a failing operator lookup yields no link, never an error.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from auditlog.models.audit import AuditRecord
from auditlog.services.diff_engine import FieldChange, compute_field_changes
from auditlog.services.field_registry import FieldRegistry, default_registry
from auditlog.services.store import AuditRecordStore
from auditlog.services.summarizer import entity_label
from auditlog.services.user_agent import DeviceInfo, parse_user_agent

logger = logging.getLogger("auditlog.detail")

OperatorLinkResolver = Callable[[str], Optional[str]]

ENTITY_LINKS = {
    "Product": "/products/{id}",
    "Customer": "/customers/{id}",
    "Employee": "/employees/{id}",
    "Supplier": "/suppliers/{id}",
    "Sale": "/sales/{id}",
    "PurchaseOrder": "/purchases/{id}",
    "Brand": "/settings#brands",
    "Category": "/settings#categories",
}


class RecordNotFoundError(Exception):
    """Raised when an audit record id does not exist."""
    def __init__(self, record_id: int):
        self.record_id = record_id
        super().__init__(f"Audit record {record_id} not found")


@dataclass
class RecordDetail:
    id: int
    entity_type: str
    entity_id: Optional[str]
    action: str
    created_at: datetime
    actor_id: Optional[str]
    actor_name: Optional[str]
    ip_address: Optional[str]
    correlation_id: Optional[str]
    device_info: DeviceInfo
    old_snapshot: Optional[Dict[str, Any]]
    new_snapshot: Optional[Dict[str, Any]]
    entity_name: str
    entity_link: Optional[str] = None
    operator_link: Optional[str] = None
    field_changes: List[FieldChange] = field(default_factory=list)


def entity_link(entity_type: Optional[str], entity_id: Optional[str]) -> Optional[str]:
    if not entity_type or entity_id is None:
        return None
    template = ENTITY_LINKS.get(entity_type)
    if template is None:
        return None
    return template.format(id=entity_id)


def entity_display_name(entity_type: str, entity_id: Optional[str]) -> str:
    label = entity_label(entity_type)
    if entity_id is None:
        return label
    return f"{label} #{entity_id}"


class AuditDetailService:
    """Builds RecordDetail views from the store."""

    def __init__(
        self,
        store: AuditRecordStore,
        registry: FieldRegistry = default_registry,
        operator_link_resolver: Optional[OperatorLinkResolver] = None,
    ):
        self.store = store
        self.registry = registry
        self.operator_link_resolver = operator_link_resolver

    def get_record_detail(self, record_id: int) -> RecordDetail:
        record = self.store.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return self.build_detail(record)

    def build_detail(self, record: AuditRecord) -> RecordDetail:
        return RecordDetail(
            id=record.id,
            entity_type=record.entity_type,
            entity_id=record.entity_id,
            action=record.action,
            created_at=record.created_at,
            actor_id=record.actor_id,
            actor_name=record.actor_name,
            ip_address=record.ip_address,
            correlation_id=record.correlation_id,
            device_info=parse_user_agent(record.user_agent),
            old_snapshot=record.old_snapshot,
            new_snapshot=record.new_snapshot,
            entity_name=entity_display_name(record.entity_type, record.entity_id),
            entity_link=entity_link(record.entity_type, record.entity_id),
            operator_link=self._operator_link(record.actor_id),
            field_changes=compute_field_changes(
                record.entity_type,
                record.old_snapshot,
                record.new_snapshot,
                self.registry
            ),
        )

    def _operator_link(self, actor_id: Optional[str]) -> Optional[str]:
        if actor_id is None or self.operator_link_resolver is None:
            return None
        try:
            return self.operator_link_resolver(actor_id)
        except Exception:
            logger.warning("Operator link lookup failed for actor_id=%s", actor_id, exc_info=True)
            return None
