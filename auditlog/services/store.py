"""
Query contract over the append-only audit_records table.

Grouping and pagination only talk to the store through these methods, so
they stay independent of how records are persisted. The ranking query is
a server-side aggregate: it returns one row per correlation_id with the
group's latest timestamp, without loading member rows.
"""
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, NamedTuple, Optional, Sequence

from sqlalchemy import distinct, func
from sqlalchemy.orm import Query, Session

from auditlog.models.audit import AuditRecord


@dataclass
class AuditFilter:
    """Optional predicates, all ANDed. Blank free text counts as absent."""
    entity_type: Optional[str] = None
    action: Optional[str] = None
    actor_id: Optional[str] = None
    free_text: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    def __post_init__(self):
        if self.free_text is not None:
            self.free_text = self.free_text.strip() or None

    @property
    def has_free_text(self) -> bool:
        return self.free_text is not None


@dataclass
class Page:
    """One page of results plus the totals needed to navigate."""
    items: List[Any] = field(default_factory=list)
    page: int = 0
    size: int = 20
    total_elements: int = 0

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 0
        return math.ceil(self.total_elements / self.size)

    @property
    def first(self) -> bool:
        return self.page == 0

    @property
    def last(self) -> bool:
        return self.page + 1 >= self.total_pages


class CorrelationRank(NamedTuple):
    correlation_id: str
    max_time: datetime


def escape_like(term: str) -> str:
    """Make % and _ in a search term match literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def validate_page_request(page: int, size: int) -> None:
    if page < 0:
        raise ValueError(f"page must be >= 0, got {page}")
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")


class AuditRecordStore:
    """Reads and appends audit records through one SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def _apply_filter(self, query: Query, audit_filter: AuditFilter, include_free_text: bool = True) -> Query:
        if audit_filter.entity_type:
            query = query.filter(AuditRecord.entity_type == audit_filter.entity_type)
        if audit_filter.action:
            query = query.filter(AuditRecord.action == audit_filter.action)
        if audit_filter.actor_id:
            query = query.filter(AuditRecord.actor_id == audit_filter.actor_id)
        if audit_filter.date_from:
            query = query.filter(AuditRecord.created_at >= audit_filter.date_from)
        if audit_filter.date_to:
            query = query.filter(AuditRecord.created_at <= audit_filter.date_to)
        if include_free_text and audit_filter.free_text:
            pattern = f"%{escape_like(audit_filter.free_text)}%"
            query = query.filter(AuditRecord.actor_name.ilike(pattern, escape="\\"))
        return query

    @staticmethod
    def _newest_first(query: Query) -> Query:
        return query.order_by(AuditRecord.created_at.desc(), AuditRecord.id.desc())

    # Grouped pagination queries

    def ranked_correlation_groups(
        self,
        audit_filter: AuditFilter,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[CorrelationRank]:
        """Distinct correlation ids matching the filter, latest group first."""
        max_time = func.max(AuditRecord.created_at).label("max_time")
        query = self.db.query(AuditRecord.correlation_id, max_time).filter(
            AuditRecord.correlation_id.isnot(None)
        )
        query = self._apply_filter(query, audit_filter, include_free_text=False)
        query = query.group_by(AuditRecord.correlation_id).order_by(
            max_time.desc(), AuditRecord.correlation_id
        ).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        rows = query.all()
        return [CorrelationRank(key, latest) for key, latest in rows]

    def count_distinct_correlation_groups(self, audit_filter: AuditFilter) -> int:
        query = self.db.query(func.count(distinct(AuditRecord.correlation_id))).filter(
            AuditRecord.correlation_id.isnot(None)
        )
        query = self._apply_filter(query, audit_filter, include_free_text=False)
        return query.scalar() or 0

    def fetch_uncorrelated(self, audit_filter: AuditFilter, cap: int) -> List[AuditRecord]:
        """Newest uncorrelated records matching the filter, at most cap rows."""
        query = self.db.query(AuditRecord).filter(AuditRecord.correlation_id.is_(None))
        query = self._apply_filter(query, audit_filter, include_free_text=False)
        return self._newest_first(query).limit(cap).all()

    def fetch_by_correlation_ids(
        self,
        correlation_ids: Sequence[str],
        audit_filter: Optional[AuditFilter] = None,
    ) -> List[AuditRecord]:
        """Members of the given correlation groups, newest first."""
        if not correlation_ids:
            return []
        query = self.db.query(AuditRecord).filter(
            AuditRecord.correlation_id.in_(list(correlation_ids))
        )
        if audit_filter is not None:
            query = self._apply_filter(query, audit_filter, include_free_text=False)
        return self._newest_first(query).all()

    # Flat record queries

    def search(self, audit_filter: AuditFilter, limit: int) -> List[AuditRecord]:
        """Newest records matching every predicate, free text included."""
        query = self._apply_filter(self.db.query(AuditRecord), audit_filter)
        return self._newest_first(query).limit(limit).all()

    def search_page(self, audit_filter: AuditFilter, page: int, size: int) -> Page:
        validate_page_request(page, size)
        query = self._apply_filter(self.db.query(AuditRecord), audit_filter)
        total = query.count()
        items = self._newest_first(query).offset(page * size).limit(size).all()
        return Page(items=items, page=page, size=size, total_elements=total)

    def get(self, record_id: int) -> Optional[AuditRecord]:
        return self.db.query(AuditRecord).filter(AuditRecord.id == record_id).first()

    def for_entity(self, entity_type: str, entity_id: str) -> List[AuditRecord]:
        query = self.db.query(AuditRecord).filter(
            AuditRecord.entity_type == entity_type,
            AuditRecord.entity_id == entity_id
        )
        return self._newest_first(query).all()

    def entity_types(self) -> List[str]:
        rows = self.db.query(AuditRecord.entity_type).distinct().order_by(AuditRecord.entity_type).all()
        return [row[0] for row in rows]

    def actions(self) -> List[str]:
        rows = self.db.query(AuditRecord.action).distinct().order_by(AuditRecord.action).all()
        return [row[0] for row in rows]

    # Writes

    def append(self, record: AuditRecord) -> AuditRecord:
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def purge_older_than(self, cutoff: datetime) -> int:
        """Delete every record created before cutoff. Safe to repeat."""
        deleted = self.db.query(AuditRecord).filter(
            AuditRecord.created_at < cutoff
        ).delete(synchronize_session=False)
        self.db.commit()
        return deleted
