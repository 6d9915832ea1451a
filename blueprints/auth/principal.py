from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from models import Role


@dataclass(frozen=True)
class Principal:
    """Who is acting. Built once per request and handed to the services."""
    user_id: Optional[int]
    role: str

    @classmethod
    def from_user(cls, user) -> "Principal":
        if user is None or not getattr(user, "is_authenticated", False):
            return cls(user_id=None, role="")
        return cls(user_id=getattr(user, "id", None), role=getattr(user, "role", "") or "")

    @classmethod
    def system(cls) -> "Principal":
        # seed scripts and maintenance jobs
        return cls(user_id=None, role=Role.ADMIN.value)

    def require_role(self, *roles: str) -> None:
        if self.role not in roles:
            raise PermissionError("FORBIDDEN")
