"""API routes for the audit trail."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from auditlog.database import get_db
from auditlog.services.audit_writer import AuditWriter, audit_writer
from auditlog.services.detail import AuditDetailService, RecordNotFoundError
from auditlog.services.paginator import OperationPaginator
from auditlog.services.request_context import client_metadata
from auditlog.services.retention import purge_older_than
from auditlog.services.store import AuditFilter, AuditRecordStore
from auditlog.api.schemas import (
    AuditRecordCreate,
    AppendAccepted,
    AuditRecordResponse,
    RecordPageResponse,
    OperationPageResponse,
    RecordDetailResponse,
    PurgeResponse
)

router = APIRouter()


def get_audit_writer() -> AuditWriter:
    """Dependency for the process-wide audit writer."""
    return audit_writer


def get_audit_filter(
    entity_type: Optional[str] = None,
    action: Optional[str] = None,
    actor_id: Optional[str] = None,
    search: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> AuditFilter:
    """Shared filter query parameters."""
    return AuditFilter(
        entity_type=entity_type,
        action=action,
        actor_id=actor_id,
        free_text=search,
        date_from=date_from,
        date_to=date_to
    )


# Append endpoint
@router.post("/audit-logs", response_model=AppendAccepted, status_code=status.HTTP_202_ACCEPTED)
def append_audit_record(
    data: AuditRecordCreate,
    request: Request,
    writer: AuditWriter = Depends(get_audit_writer)
):
    """
    Queue an audit record for writing.
    Fire-and-forget: the response does not wait for the record to be stored.
    """
    ip_address, user_agent = client_metadata(request)
    accepted = writer.record(
        entity_type=data.entity_type,
        entity_id=data.entity_id,
        action=data.action,
        old_snapshot=data.old_snapshot,
        new_snapshot=data.new_snapshot,
        actor_id=data.actor_id,
        actor_name=data.actor_name,
        correlation_id=data.correlation_id,
        ip_address=data.ip_address or ip_address,
        user_agent=data.user_agent or user_agent
    )
    return AppendAccepted(accepted=accepted)


# Record endpoints
@router.get("/audit-logs", response_model=RecordPageResponse)
def search_audit_records(
    audit_filter: AuditFilter = Depends(get_audit_filter),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Flat list of audit records, newest first."""
    result = AuditRecordStore(db).search_page(audit_filter, page, size)
    return RecordPageResponse.model_validate(result)


@router.get("/audit-logs/grouped", response_model=OperationPageResponse)
def search_grouped_audit_records(
    audit_filter: AuditFilter = Depends(get_audit_filter),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """
    Audit records grouped into logical operations, newest first.
    Groups by correlation id when present, otherwise by actor and time proximity.
    """
    paginator = OperationPaginator(AuditRecordStore(db))
    result = paginator.list_operations(audit_filter, page, size)
    return OperationPageResponse.model_validate(result)


@router.get("/audit-logs/entity-types", response_model=List[str])
def list_entity_types(db: Session = Depends(get_db)):
    """All entity types present in the audit trail."""
    return AuditRecordStore(db).entity_types()


@router.get("/audit-logs/actions", response_model=List[str])
def list_actions(db: Session = Depends(get_db)):
    """All actions present in the audit trail."""
    return AuditRecordStore(db).actions()


@router.get("/audit-logs/entity/{entity_type}/{entity_id}", response_model=List[AuditRecordResponse])
def get_entity_history(entity_type: str, entity_id: str, db: Session = Depends(get_db)):
    """Every audit record of one entity, newest first."""
    return AuditRecordStore(db).for_entity(entity_type, entity_id)


@router.get("/audit-logs/{record_id}/detail", response_model=RecordDetailResponse)
def get_audit_record_detail(record_id: int, db: Session = Depends(get_db)):
    """One audit record with its labeled field-by-field diff."""
    service = AuditDetailService(AuditRecordStore(db))
    try:
        detail = service.get_record_detail(record_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="Audit record not found")
    return RecordDetailResponse.model_validate(detail)


# Retention endpoint
@router.delete("/audit-logs/retention", response_model=PurgeResponse)
def purge_audit_records(before: datetime = Query(...), db: Session = Depends(get_db)):
    """Delete every audit record created before the given time."""
    return PurgeResponse(deleted=purge_older_than(db, before))
