"""Minimal principal/permission model standing in for host request plumbing."""
from dataclasses import dataclass, field
from typing import Optional

EDIT_ATTACHMENT = "edit-attachment"


@dataclass(frozen=True)
class Principal:
    user_id: Optional[str] = None
    permissions: frozenset[str] = field(default_factory=frozenset)
    admin: bool = False


def can(principal: Optional[Principal], action: str) -> bool:
    if principal is None:
        return False
    return principal.admin or action in principal.permissions


def effective_user_id(principal: Optional[Principal]) -> Optional[str]:
    return principal.user_id if principal else None
