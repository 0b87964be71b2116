from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .models import Profile, Role, Status


@dataclass(frozen=True)
class Viewer:
    """Snapshot of the current user as seen by the service layer."""

    id: int
    full_name: str
    email: str
    role: str
    company_id: Optional[int] = None
    permissions: dict[str, bool] = field(default_factory=dict)
    status: str = Status.ACTIVE

    @property
    def is_developer(self) -> bool:
        return self.role == Role.DEVELOPER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def from_user(cls, user: Any) -> Optional["Viewer"]:
        if user is None or not getattr(user, "is_authenticated", False):
            return None
        profile, _ = Profile.objects.get_or_create(user=user)
        return cls(
            id=user.pk,
            full_name=profile.full_name,
            email=user.email,
            role=profile.role,
            company_id=profile.company_id,
            permissions=dict(profile.permissions or {}),
            status=profile.status,
        )
