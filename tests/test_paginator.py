"""
Tests for paginating logical operations.

These tests prove:
- Walking every page yields each group exactly once
- Only correlation groups inside the page window are loaded
- Uncorrelated groups beyond the fetch cap are invisible to totals
- Free-text search falls back to in-memory grouping
"""
import pytest

from auditlog.services.paginator import OperationPaginator
from auditlog.services.store import AuditFilter, AuditRecordStore
from conftest import at


class SpyStore(AuditRecordStore):
    """Store that records ranking windows and which ids were resolved to members."""

    def __init__(self, db):
        super().__init__(db)
        self.resolved = []
        self.ranked_windows = []

    def ranked_correlation_groups(self, audit_filter, offset=0, limit=None):
        self.ranked_windows.append((offset, limit))
        return super().ranked_correlation_groups(audit_filter, offset, limit)

    def fetch_by_correlation_ids(self, correlation_ids, audit_filter=None):
        self.resolved.append(list(correlation_ids))
        return super().fetch_by_correlation_ids(correlation_ids, audit_filter)


@pytest.fixture
def mixed_history(add_record):
    """
    Four correlated operations and four inferred ones, interleaved in time.

    Correlated: C1 (t=100,101), C2 (t=200), C3 (t=300,302,303), C4 (t=400)
    Uncorrelated: u1 t=50,51 | u2 t=150 | u1 t=250 | u3 t=350,352
    """
    for key, times in [("C1", (100, 101)), ("C2", (200,)), ("C3", (300, 302, 303)), ("C4", (400,))]:
        for t in times:
            add_record(at(t), correlation_id=key, entity_type="Sale", action="CREATE")
    for actor, times in [("u1", (50, 51)), ("u2", (150,)), ("u1", (250,)), ("u3", (350, 352))]:
        for t in times:
            add_record(at(t), actor_id=actor, actor_name=actor.upper())


class TestFastPath:

    def test_every_page_concatenated_is_complete(self, db_session, mixed_history):
        """Pages cover exactly total_elements groups, no duplicates, no omissions."""
        paginator = OperationPaginator(AuditRecordStore(db_session))

        first = paginator.list_operations(AuditFilter(), page=0, size=3)
        keys = []
        for page in range(first.total_pages):
            result = paginator.list_operations(AuditFilter(), page=page, size=3)
            keys.extend(op.group_key for op in result.items)

        assert first.total_elements == 8
        assert first.total_pages == 3
        assert len(keys) == 8
        assert len(set(keys)) == 8
        assert {"C1", "C2", "C3", "C4"} <= set(keys)

    def test_page_sorted_newest_first(self, db_session, mixed_history):
        paginator = OperationPaginator(AuditRecordStore(db_session))

        for page in range(3):
            items = paginator.list_operations(AuditFilter(), page=page, size=3).items
            timestamps = [op.timestamp for op in items]
            assert timestamps == sorted(timestamps, reverse=True)

    def test_correlated_groups_ranked_by_latest_member(self, db_session, mixed_history):
        paginator = OperationPaginator(AuditRecordStore(db_session))

        result = paginator.list_operations(AuditFilter(), page=0, size=4)

        assert [op.group_key for op in result.items] == ["C4", "C3", "C2", "C1"]
        c3 = result.items[1]
        assert c3.count == 3
        assert c3.timestamp == at(303)

    def test_only_page_window_ids_resolved(self, db_session, mixed_history):
        store = SpyStore(db_session)
        paginator = OperationPaginator(store)

        paginator.list_operations(AuditFilter(), page=1, size=2)

        assert store.resolved == [["C2", "C1"]]
        assert store.ranked_windows == [(2, 2)]

    def test_uncorrelated_only_page_resolves_nothing(self, db_session, mixed_history):
        store = SpyStore(db_session)
        paginator = OperationPaginator(store)

        result = paginator.list_operations(AuditFilter(), page=1, size=4)

        assert store.resolved == []
        assert store.ranked_windows == []
        assert all(op.correlation_id is None for op in result.items)
        assert [op.timestamp for op in result.items] == [at(352), at(250), at(150), at(51)]

    def test_page_spanning_both_sources(self, db_session, mixed_history):
        paginator = OperationPaginator(AuditRecordStore(db_session))

        result = paginator.list_operations(AuditFilter(), page=1, size=3)

        # Window covers C1 plus the two newest inferred groups, re-sorted by time
        assert [op.timestamp for op in result.items] == [at(352), at(250), at(101)]

    def test_page_past_the_end(self, db_session, mixed_history):
        paginator = OperationPaginator(AuditRecordStore(db_session))

        result = paginator.list_operations(AuditFilter(), page=10, size=3)

        assert result.items == []
        assert result.total_elements == 8
        assert result.last is True

    def test_page_flags(self, db_session, mixed_history):
        paginator = OperationPaginator(AuditRecordStore(db_session))

        first = paginator.list_operations(AuditFilter(), page=0, size=3)
        last = paginator.list_operations(AuditFilter(), page=2, size=3)

        assert first.first and not first.last
        assert last.last and not last.first
        assert len(last.items) == 2

    def test_uncorrelated_cap_limits_totals(self, db_session, mixed_history):
        paginator = OperationPaginator(AuditRecordStore(db_session), uncorrelated_cap=3)

        result = paginator.list_operations(AuditFilter(), page=0, size=20)

        # Newest three uncorrelated records: t=352, 350 (u3) and 250 (u1)
        assert result.total_elements == 4 + 2
        assert len(result.items) == 6

    def test_filter_applies_to_both_sources(self, db_session, mixed_history, add_record):
        add_record(at(500), correlation_id="C5", entity_type="Product")
        paginator = OperationPaginator(AuditRecordStore(db_session))

        result = paginator.list_operations(AuditFilter(entity_type="Sale"), page=0, size=20)

        assert [op.group_key for op in result.items] == ["C4", "C3", "C2", "C1"]

    def test_filtered_members_only(self, db_session, add_record):
        add_record(at(0), correlation_id="X", entity_type="Sale", action="CREATE")
        add_record(at(1), correlation_id="X", entity_type="Payment", action="CREATE")
        paginator = OperationPaginator(AuditRecordStore(db_session))

        result = paginator.list_operations(AuditFilter(entity_type="Sale"), page=0, size=20)

        operation = result.items[0]
        assert operation.count == 1
        assert operation.timestamp == at(0)

    def test_date_range_filter(self, db_session, mixed_history):
        paginator = OperationPaginator(AuditRecordStore(db_session))

        result = paginator.list_operations(
            AuditFilter(date_from=at(140), date_to=at(260)), page=0, size=20
        )

        assert [op.timestamp for op in result.items] == [at(250), at(200), at(150)]

    def test_repeat_queries_are_identical(self, db_session, mixed_history):
        paginator = OperationPaginator(AuditRecordStore(db_session))

        first = paginator.list_operations(AuditFilter(), page=0, size=8)
        second = paginator.list_operations(AuditFilter(), page=0, size=8)

        assert [op.group_key for op in first.items] == [op.group_key for op in second.items]

    def test_invalid_page_request(self, db_session):
        paginator = OperationPaginator(AuditRecordStore(db_session))

        with pytest.raises(ValueError):
            paginator.list_operations(AuditFilter(), page=-1, size=10)
        with pytest.raises(ValueError):
            paginator.list_operations(AuditFilter(), page=0, size=0)

    def test_empty_store(self, db_session):
        result = OperationPaginator(AuditRecordStore(db_session)).list_operations(AuditFilter())

        assert result.items == []
        assert result.total_elements == 0
        assert result.total_pages == 0


class TestSearchPath:

    def test_free_text_matches_actor_name(self, db_session, mixed_history):
        paginator = OperationPaginator(AuditRecordStore(db_session))

        result = paginator.list_operations(AuditFilter(free_text="  u1 "), page=0, size=20)

        assert result.total_elements == 2
        assert [op.actor_id for op in result.items] == ["u1", "u1"]

    def test_search_groups_correlated_records_too(self, db_session, add_record):
        add_record(at(0), correlation_id="X", actor_name="Alisher Karimov")
        add_record(at(10), correlation_id="X", actor_name="Alisher Karimov")
        add_record(at(20), actor_name="alisher k.")
        add_record(at(30), actor_name="Bobur")
        paginator = OperationPaginator(AuditRecordStore(db_session))

        result = paginator.list_operations(AuditFilter(free_text="ALISHER"), page=0, size=20)

        assert result.total_elements == 2
        assert [op.group_key for op in result.items][1] == "X"
        assert result.items[1].count == 2

    def test_search_slices_in_memory(self, db_session, mixed_history):
        paginator = OperationPaginator(AuditRecordStore(db_session))

        result = paginator.list_operations(AuditFilter(free_text="U"), page=1, size=2)

        assert result.total_elements == 4
        assert [op.timestamp for op in result.items] == [at(150), at(51)]

    def test_wildcards_in_search_match_literally(self, db_session, add_record):
        add_record(at(0), actor_name="Alisher")
        add_record(at(30), actor_name="100% Bobur", actor_id="u2")
        add_record(at(60), actor_name="ali_vali", actor_id="u3")
        paginator = OperationPaginator(AuditRecordStore(db_session))

        percent = paginator.list_operations(AuditFilter(free_text="%"), page=0, size=20)
        underscore = paginator.list_operations(AuditFilter(free_text="i_v"), page=0, size=20)

        assert [op.actor_name for op in percent.items] == ["100% Bobur"]
        assert [op.actor_name for op in underscore.items] == ["ali_vali"]

    def test_blank_search_uses_fast_path(self, db_session, mixed_history):
        store = SpyStore(db_session)

        result = OperationPaginator(store).list_operations(AuditFilter(free_text="   "), page=0, size=2)

        assert store.resolved == [["C4", "C3"]]
        assert result.total_elements == 8
