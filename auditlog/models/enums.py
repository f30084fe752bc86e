"""Enums for the audit trail - the closed vocabularies of records and diffs."""
from enum import Enum


class AuditAction(str, Enum):
    """The three kinds of atomic change an audit record can describe."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ChangeType(str, Enum):
    """How a single field differs between the old and new snapshot."""
    ADDED = "ADDED"
    REMOVED = "REMOVED"
    MODIFIED = "MODIFIED"
    UNCHANGED = "UNCHANGED"  # Computed internally, never emitted


class FieldType(str, Enum):
    """Value type of a field, drives display formatting."""
    STRING = "STRING"
    NUMBER = "NUMBER"
    CURRENCY = "CURRENCY"
    DATE = "DATE"
    DATETIME = "DATETIME"
    BOOLEAN = "BOOLEAN"
    ENUM = "ENUM"
    JSON = "JSON"
