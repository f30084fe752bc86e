"""
Grouping engine - turns flat audit records into logical operations.

Two disjoint rules:
- Records carrying a correlation_id are grouped exactly by that key.
- Records without one are grouped by a greedy single pass over the records,
  newest first: a record joins the open group when it has the same actor
  and lies within GROUPING_WINDOW of the group's anchor (the first record
  admitted). The window is anchored, it does not slide.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from auditlog.models.audit import AuditRecord
from auditlog.services.summarizer import (
    distinct_entity_types,
    primary_action_label,
    summarize,
)

GROUPING_WINDOW = timedelta(seconds=3)


@dataclass
class Operation:
    """A set of audit records judged to be one business action."""
    group_key: str
    correlation_id: Optional[str]
    timestamp: datetime
    actor_id: Optional[str]
    actor_name: Optional[str]
    primary_action_label: str
    summary: str
    entity_types: List[str] = field(default_factory=list)
    member_records: List[AuditRecord] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.member_records)


def newest_first(records: Sequence[AuditRecord]) -> List[AuditRecord]:
    """Sort records by created_at descending, ties broken by id descending."""
    return sorted(records, key=lambda r: (r.created_at, r.id or 0), reverse=True)


def build_operation(
    records: Sequence[AuditRecord],
    correlation_id: Optional[str] = None,
) -> Operation:
    """
    Assemble an Operation from its member records.

    Raises ValueError on an empty member list: every group has at least
    one member, so an empty one is a caller bug.
    """
    if not records:
        raise ValueError("Cannot build an operation from an empty record list")

    members = newest_first(records)
    latest = members[0]

    if correlation_id is not None:
        group_key = correlation_id
    else:
        earliest = members[-1]
        group_key = f"{earliest.created_at.isoformat()}_{earliest.actor_id}"

    return Operation(
        group_key=group_key,
        correlation_id=correlation_id,
        timestamp=latest.created_at,
        actor_id=latest.actor_id,
        actor_name=latest.actor_name,
        primary_action_label=primary_action_label(members),
        summary=summarize(members),
        entity_types=distinct_entity_types(members),
        member_records=members,
    )


def group_by_correlation(records: Sequence[AuditRecord]) -> List[Operation]:
    """One operation per distinct correlation_id, in first-seen order."""
    buckets: Dict[str, List[AuditRecord]] = {}
    for record in records:
        if record.correlation_id is None:
            continue
        buckets.setdefault(record.correlation_id, []).append(record)

    return [build_operation(members, key) for key, members in buckets.items()]


def group_by_time_window(
    records: Sequence[AuditRecord],
    window: timedelta = GROUPING_WINDOW,
) -> List[Operation]:
    """
    Infer operations for records without a correlation_id.

    Returns operations newest first. The result depends on iterating in
    descending time order, so the input is re-sorted here.
    """
    groups = []
    current: List[AuditRecord] = []
    anchor_time = None
    group_actor = None

    for record in newest_first(records):
        if not current:
            current.append(record)
            anchor_time = record.created_at
            group_actor = record.actor_id
            continue

        same_actor = record.actor_id == group_actor
        within_window = abs(anchor_time - record.created_at) <= window

        if same_actor and within_window:
            current.append(record)
        else:
            groups.append(build_operation(current))
            current = [record]
            anchor_time = record.created_at
            group_actor = record.actor_id

    if current:
        groups.append(build_operation(current))

    return groups


def sort_operations(operations: List[Operation]) -> List[Operation]:
    """Stable sort by representative timestamp, newest first."""
    return sorted(operations, key=lambda op: op.timestamp, reverse=True)


def group_records(records: Sequence[AuditRecord]) -> List[Operation]:
    """Group a mixed set of correlated and uncorrelated records."""
    if not records:
        return []

    correlated = group_by_correlation(records)
    uncorrelated = group_by_time_window(
        [r for r in records if r.correlation_id is None]
    )
    return sort_operations(correlated + uncorrelated)
