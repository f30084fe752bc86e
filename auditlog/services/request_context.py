"""Explicit capture of client metadata for audit appends."""
import uuid
from typing import Optional, Tuple

from fastapi import Request


def client_ip(request: Optional[Request]) -> Optional[str]:
    """Extract client IP from request, preferring X-Forwarded-For (behind a proxy)."""
    if request is None:
        return None

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # Take the first IP (original client)
        return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return None


def client_metadata(request: Optional[Request]) -> Tuple[Optional[str], Optional[str]]:
    """Return (ip_address, user_agent) to hand to the audit writer."""
    if request is None:
        return None, None
    return client_ip(request), request.headers.get("user-agent")


def new_correlation_id() -> str:
    """Fresh key to attach to every record written for one operation."""
    return str(uuid.uuid4())
