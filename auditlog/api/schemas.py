"""Pydantic schemas for request/response validation."""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from auditlog.models.enums import AuditAction, ChangeType, FieldType


# Append schemas
class AuditRecordCreate(BaseModel):
    entity_type: str = Field(..., min_length=1, max_length=100)
    entity_id: Optional[str] = None
    action: AuditAction
    old_snapshot: Optional[Dict[str, Any]] = None
    new_snapshot: Optional[Dict[str, Any]] = None
    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    correlation_id: Optional[str] = Field(None, max_length=64)
    # Taken from the request when not supplied
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class AppendAccepted(BaseModel):
    """Response for a queued append; accepted is False when it was dropped."""
    accepted: bool


# Record schemas
class AuditRecordResponse(BaseModel):
    id: int
    entity_type: str
    entity_id: Optional[str]
    action: str
    old_snapshot: Optional[Dict[str, Any]]
    new_snapshot: Optional[Dict[str, Any]]
    actor_id: Optional[str]
    actor_name: Optional[str]
    ip_address: Optional[str]
    user_agent: Optional[str]
    correlation_id: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class RecordPageResponse(BaseModel):
    items: List[AuditRecordResponse]
    page: int
    size: int
    total_elements: int
    total_pages: int
    first: bool
    last: bool

    class Config:
        from_attributes = True


# Operation schemas
class OperationResponse(BaseModel):
    group_key: str
    correlation_id: Optional[str]
    timestamp: datetime
    actor_id: Optional[str]
    actor_name: Optional[str]
    primary_action_label: str
    summary: str
    count: int
    entity_types: List[str]
    member_records: List[AuditRecordResponse]

    class Config:
        from_attributes = True


class OperationPageResponse(BaseModel):
    """One page of logical operations, newest first."""
    items: List[OperationResponse]
    page: int
    size: int
    total_elements: int
    total_pages: int
    first: bool
    last: bool

    class Config:
        from_attributes = True


# Detail schemas
class FieldChangeResponse(BaseModel):
    field_name: str
    label: str
    old_value: Any = None
    new_value: Any = None
    change_type: ChangeType
    field_type: FieldType
    sensitive: bool
    old_formatted: str
    new_formatted: str

    class Config:
        from_attributes = True


class DeviceInfoResponse(BaseModel):
    device_type: str
    browser: str
    browser_version: Optional[str]
    os: str
    os_version: Optional[str]
    user_agent: str

    class Config:
        from_attributes = True


class RecordDetailResponse(BaseModel):
    id: int
    entity_type: str
    entity_id: Optional[str]
    action: str
    created_at: datetime
    actor_id: Optional[str]
    actor_name: Optional[str]
    ip_address: Optional[str]
    correlation_id: Optional[str]
    device_info: DeviceInfoResponse
    field_changes: List[FieldChangeResponse]
    old_snapshot: Optional[Dict[str, Any]]
    new_snapshot: Optional[Dict[str, Any]]
    entity_name: str
    entity_link: Optional[str]
    operator_link: Optional[str]

    class Config:
        from_attributes = True


# Retention
class PurgeResponse(BaseModel):
    deleted: int
