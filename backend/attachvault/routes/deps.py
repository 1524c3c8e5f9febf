"""Shared route dependencies: service lookup, principal resolution, error mapping."""
from typing import Optional
from fastapi import Header, HTTPException, Request

from attachvault.errors import (
    AttachmentError, AttachmentIOError, AttachmentNotFoundError,
    AttachmentPermissionError, AttachmentValidationError,
)
from attachvault.services.container import Services
from attachvault.services.permissions import Principal

_STATUS_CODES = {
    AttachmentValidationError: 400,
    AttachmentPermissionError: 403,
    AttachmentNotFoundError: 404,
    AttachmentIOError: 502,
}


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_principal(
    x_user_id: Optional[str] = Header(None),
    x_user_permissions: Optional[str] = Header(None),
) -> Optional[Principal]:
    """Stand-in for host authentication: identity and grants come from headers."""
    if not x_user_id:
        return None
    grants = frozenset(p.strip() for p in (x_user_permissions or "").split(",") if p.strip())
    return Principal(user_id=x_user_id, permissions=grants)


def http_error(e: AttachmentError) -> HTTPException:
    return HTTPException(status_code=_STATUS_CODES.get(type(e), 500), detail=str(e))
