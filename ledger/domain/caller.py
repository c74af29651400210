"""
Resolved caller identity. Authentication happens upstream.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from ledger.domain.errors import Unauthorized


class Role(str, Enum):
    """Caller role."""
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class Caller:
    user_id: UUID
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def require_caller(caller: Caller | None) -> Caller:
    """Fail unless a caller identity was resolved."""
    if caller is None:
        raise Unauthorized("Authentication required")
    return caller


def require_admin(caller: Caller | None) -> Caller:
    """Fail unless caller has the admin capability."""
    caller = require_caller(caller)
    if not caller.is_admin:
        raise Unauthorized("Admin role required")
    return caller
