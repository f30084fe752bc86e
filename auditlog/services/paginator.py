"""
Paginates logical operations over the audit trail.

Fast path (no free text): correlated groups are counted with a distinct
aggregate, uncorrelated groups come from a capped fetch grouped in memory.
The virtual sequence is correlated ranking first, then uncorrelated groups;
only the slice of the ranking inside the requested window is fetched and
has its members loaded. The page is finally re-sorted by timestamp, newest
first.

Search path (free text): the ranking aggregate cannot filter on actor name,
so a capped set of matching records is grouped entirely in memory and
sliced.

In both paths groups beyond the fetch cap are not counted.
"""
import logging
from typing import Dict, List

from auditlog import config
from auditlog.models.audit import AuditRecord
from auditlog.services.grouping import (
    Operation,
    build_operation,
    group_by_time_window,
    group_records,
    sort_operations,
)
from auditlog.services.store import AuditFilter, AuditRecordStore, Page, validate_page_request

logger = logging.getLogger("auditlog.paginator")


class OperationPaginator:
    """Builds pages of Operations from an AuditRecordStore."""

    def __init__(
        self,
        store: AuditRecordStore,
        uncorrelated_cap: int = config.UNCORRELATED_FETCH_CAP,
        search_cap: int = config.SEARCH_FETCH_CAP,
    ):
        self.store = store
        self.uncorrelated_cap = uncorrelated_cap
        self.search_cap = search_cap

    def list_operations(self, audit_filter: AuditFilter, page: int = 0, size: int = 20) -> Page:
        validate_page_request(page, size)
        if audit_filter.has_free_text:
            return self._search_operations(audit_filter, page, size)
        return self._ranked_operations(audit_filter, page, size)

    def _ranked_operations(self, audit_filter: AuditFilter, page: int, size: int) -> Page:
        correlated_total = self.store.count_distinct_correlation_groups(audit_filter)

        uncorrelated_records = self.store.fetch_uncorrelated(audit_filter, self.uncorrelated_cap)
        if len(uncorrelated_records) >= self.uncorrelated_cap:
            logger.info(
                "Uncorrelated fetch hit cap=%s; older groups are not paginated",
                self.uncorrelated_cap
            )
        uncorrelated_groups = group_by_time_window(uncorrelated_records)

        total = correlated_total + len(uncorrelated_groups)

        page_start = page * size
        page_end = min(page_start + size, total)
        if page_start >= total:
            return Page(items=[], page=page, size=size, total_elements=total)

        items: List[Operation] = []

        # Correlated part of the window: rank and resolve only these ids
        if page_start < correlated_total:
            window = self.store.ranked_correlation_groups(
                audit_filter,
                offset=page_start,
                limit=min(page_end, correlated_total) - page_start
            )
            page_ids = [rank.correlation_id for rank in window]
            members = self.store.fetch_by_correlation_ids(page_ids, audit_filter)

            by_id: Dict[str, List[AuditRecord]] = {}
            for record in members:
                by_id.setdefault(record.correlation_id, []).append(record)

            for correlation_id in page_ids:
                group_members = by_id.get(correlation_id)
                if group_members:
                    items.append(build_operation(group_members, correlation_id))

        # Uncorrelated part of the window
        if page_end > correlated_total:
            start = max(0, page_start - correlated_total)
            end = page_end - correlated_total
            items.extend(uncorrelated_groups[start:end])

        return Page(items=sort_operations(items), page=page, size=size, total_elements=total)

    def _search_operations(self, audit_filter: AuditFilter, page: int, size: int) -> Page:
        records = self.store.search(audit_filter, self.search_cap)
        if len(records) >= self.search_cap:
            logger.info(
                "Search fetch hit cap=%s for term=%r; older matches are not grouped",
                self.search_cap, audit_filter.free_text
            )

        groups = group_records(records)
        start = page * size
        return Page(
            items=groups[start:start + size],
            page=page,
            size=size,
            total_elements=len(groups)
        )
