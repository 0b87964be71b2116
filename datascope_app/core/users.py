"""Company user management for administrators and developers."""

from __future__ import annotations

from typing import Any, Optional

from django.core.exceptions import PermissionDenied
from django.db.models import QuerySet
from django.http import Http404

from .activity import log_activity
from .models import ActivityLog, ModuleName, Profile, Role, Status
from .permissions import can_manage_company_users
from .provisioning import generate_temporary_password, reset_user_password
from .viewer import Viewer

EDITABLE_PROFILE_FIELDS = ("full_name", "phone", "address", "role", "status")


class CompanyUserError(Exception):
    """Raised for invalid user management requests."""

    status_code = 400


class CompanyUserManager:
    """Operations an administrator performs on the users of their company.

    Developers may target any company by passing ``company_id``; everyone else
    is pinned to their own company. Developer accounts are never listed nor
    modified through this manager.
    """

    def __init__(self, viewer: Optional[Viewer], company_id: Optional[int] = None):
        self.viewer = viewer
        if viewer is not None and not viewer.is_developer:
            company_id = viewer.company_id
        self.company_id = company_id

    def _require_company(self) -> int:
        if not self.company_id:
            raise CompanyUserError("Nenhuma empresa associada para gerenciar usuários.")
        if not can_manage_company_users(self.viewer, self.company_id):
            raise PermissionDenied("Você não tem permissão para gerenciar usuários desta empresa.")
        return self.company_id

    def list_users(self) -> QuerySet:
        company_id = self._require_company()
        return (
            Profile.objects.filter(company_id=company_id)
            .exclude(role=Role.DEVELOPER)
            .select_related("user")
            .order_by("full_name", "user__email")
        )

    def get_profile(self, user_id) -> Profile:
        company_id = self._require_company()
        profile = (
            Profile.objects.select_related("user")
            .filter(user_id=user_id, company_id=company_id)
            .exclude(role=Role.DEVELOPER)
            .first()
        )
        if profile is None:
            raise Http404("Usuário não encontrado.")
        return profile

    def _log(self, message: str) -> None:
        log_activity(
            ActivityLog.Level.INFO,
            message,
            "USERS",
            self.viewer.id,
            self.viewer.email,
            self.company_id,
        )

    def update_profile(self, user_id, fields: dict[str, Any]) -> Profile:
        profile = self.get_profile(user_id)
        unknown = set(fields) - set(EDITABLE_PROFILE_FIELDS)
        if unknown:
            raise CompanyUserError(f"Campos não editáveis: {', '.join(sorted(unknown))}")
        if "role" in fields:
            if fields["role"] not in Role.values:
                raise CompanyUserError("Perfil de usuário inválido.")
            if fields["role"] == Role.DEVELOPER and not self.viewer.is_developer:
                raise PermissionDenied("Apenas desenvolvedores podem promover desenvolvedores.")
        if "status" in fields and fields["status"] not in Status.values:
            raise CompanyUserError("Status inválido.")

        for name, value in fields.items():
            setattr(profile, name, value)
        profile.save(update_fields=list(fields) or None)
        if "status" in fields:
            self._sync_auth_active(profile)
        self._log(f"Perfil do usuário {profile.user.email} atualizado")
        return profile

    def toggle_status(self, user_id) -> Profile:
        profile = self.get_profile(user_id)
        if profile.user_id == self.viewer.id:
            raise CompanyUserError("Você não pode desativar a sua própria conta.")
        profile.status = Status.INACTIVE if profile.status == Status.ACTIVE else Status.ACTIVE
        profile.save(update_fields=["status"])
        self._sync_auth_active(profile)
        self._log(f"Status do usuário {profile.user.email} alterado para {profile.status}")
        return profile

    def _sync_auth_active(self, profile: Profile) -> None:
        is_active = profile.status == Status.ACTIVE
        if profile.user.is_active != is_active:
            profile.user.is_active = is_active
            profile.user.save(update_fields=["is_active"])

    def update_permissions(self, user_id, permissions: dict[str, Any]) -> Profile:
        if not isinstance(permissions, dict):
            raise CompanyUserError("Permissões devem ser um objeto.")
        unknown = set(permissions) - set(ModuleName.values)
        if unknown:
            raise CompanyUserError(f"Módulos desconhecidos: {', '.join(sorted(unknown))}")
        profile = self.get_profile(user_id)
        profile.permissions = {name: bool(enabled) for name, enabled in permissions.items()}
        profile.save(update_fields=["permissions"])
        self._log(f"Permissões do usuário {profile.user.email} atualizadas")
        return profile

    def reset_password(self, user_id) -> str:
        """Generate a temporary password, apply it and return it once."""
        profile = self.get_profile(user_id)
        password = generate_temporary_password()
        reset_user_password(self.viewer, profile.user_id, password)
        return password

    def delete_user(self, user_id) -> None:
        profile = self.get_profile(user_id)
        if profile.user_id == self.viewer.id:
            raise CompanyUserError("Você não pode excluir a sua própria conta.")
        email = profile.user.email
        profile.user.delete()
        self._log(f"Usuário {email} excluído")
