"""
Privileged account provisioning.

These operations create auth users, companies and profiles on behalf of a
developer or company administrator. The steps are separate writes; when a
later step fails the earlier rows are deleted again (compensation) so no
half-provisioned account is left behind.
"""

from __future__ import annotations

import logging
import secrets
import string
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import DatabaseError

from .activity import log_activity
from .models import ActivityLog, Company, Profile, Role
from .permissions import can_manage_company_users
from .viewer import Viewer

User = get_user_model()
logger = logging.getLogger(__name__)

TEMPORARY_PASSWORD_LENGTH = 12


class ProvisioningError(Exception):
    """Raised when a provisioning step fails."""

    status_code = 500


class InvalidProvisioningRequest(ProvisioningError):
    status_code = 400


class ProvisioningForbidden(ProvisioningError):
    status_code = 403


class UserNotFound(ProvisioningError):
    status_code = 404


class EmailAlreadyRegistered(ProvisioningError):
    status_code = 409

    def __init__(self, message: str = "Já existe um usuário com este e-mail."):
        super().__init__(message)


def parse_role(value) -> Optional[str]:
    """Accept a role key ("admin") or its display label ("Administrador")."""
    if not value:
        return None
    value = str(value).strip()
    for key, label in Role.choices:
        if value.lower() in (key, str(label).lower()):
            return key
    return None


def _as_pk(value) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def generate_temporary_password(length: int = TEMPORARY_PASSWORD_LENGTH) -> str:
    alphabet = string.ascii_letters + string.digits
    # guarantee at least one letter and one digit
    while True:
        password = "".join(secrets.choice(alphabet) for _ in range(length))
        if any(c.isalpha() for c in password) and any(c.isdigit() for c in password):
            return password


def _create_auth_user(email: str, password: str, full_name: str):
    if User.objects.filter(email__iexact=email).exists() or User.objects.filter(
        username__iexact=email
    ).exists():
        raise EmailAlreadyRegistered()
    first_name, _, last_name = full_name.partition(" ")
    return User.objects.create_user(
        username=email,
        email=email,
        password=password,
        first_name=first_name[:150],
        last_name=last_name[:150],
    )


def create_company_and_admin(
    caller: Optional[Viewer],
    company_name: str,
    admin_full_name: str,
    admin_email: str,
    admin_password: str,
):
    """Create a company together with its first administrator.

    Returns:
        ``(company, admin_user)``
    """
    if caller is None or not caller.is_developer:
        raise ProvisioningForbidden("Proibido: apenas desenvolvedores podem executar esta ação.")
    company_name = (company_name or "").strip()
    admin_full_name = (admin_full_name or "").strip()
    admin_email = (admin_email or "").strip()
    if not company_name or not admin_full_name or not admin_email or not admin_password:
        raise InvalidProvisioningRequest("Campos obrigatórios ausentes.")

    try:
        user = _create_auth_user(admin_email, admin_password, admin_full_name)
    except DatabaseError as exc:
        logger.error("Error creating admin user %s: %s", admin_email, exc)
        raise ProvisioningError(f"Falha ao criar o usuário administrador: {exc}") from exc

    try:
        company = Company.objects.create(name=company_name)
    except DatabaseError as exc:
        logger.error("Error creating company %s: %s", company_name, exc)
        user.delete()
        raise ProvisioningError(f"Falha ao criar a empresa: {exc}") from exc

    try:
        Profile.objects.update_or_create(
            user=user,
            defaults={"company": company, "role": Role.ADMIN, "full_name": admin_full_name},
        )
    except DatabaseError as exc:
        logger.error("Error linking admin %s to company %s: %s", admin_email, company.pk, exc)
        user.delete()
        company.delete()
        raise ProvisioningError(f"Falha ao vincular o administrador à empresa: {exc}") from exc

    log_activity(
        ActivityLog.Level.INFO,
        f"Empresa '{company.name}' criada com o administrador {admin_email}",
        "COMPANIES",
        caller.id,
        caller.email,
        company.pk,
    )
    return company, user


def create_user_for_company(
    caller: Optional[Viewer],
    email: str,
    password: str,
    full_name: str,
    role: str,
    company_id,
):
    """Create a user inside an existing company and return the auth user."""
    values = [email, password, full_name, role, company_id]
    if any(value is None or str(value).strip() == "" for value in values):
        raise InvalidProvisioningRequest(
            "Parâmetros ausentes ou vazios: email, password, fullName, role e companyId "
            "são obrigatórios e não podem ser vazios."
        )
    role_key = parse_role(role)
    if role_key is None:
        raise InvalidProvisioningRequest("Perfil de usuário inválido.")
    company_pk = _as_pk(company_id)
    company = Company.objects.filter(pk=company_pk).first() if company_pk else None
    if company is None:
        raise InvalidProvisioningRequest("Empresa não encontrada.")
    if not can_manage_company_users(caller, company.pk):
        raise ProvisioningForbidden("Você não tem permissão para criar usuários nesta empresa.")
    if role_key == Role.DEVELOPER and not caller.is_developer:
        raise ProvisioningForbidden("Apenas desenvolvedores podem criar desenvolvedores.")

    email = email.strip()
    full_name = full_name.strip()
    try:
        user = _create_auth_user(email, password.strip(), full_name)
    except DatabaseError as exc:
        logger.error("Error creating user %s: %s", email, exc)
        raise ProvisioningError(f"Criação do usuário falhou: {exc}") from exc

    try:
        Profile.objects.update_or_create(
            user=user,
            defaults={"company": company, "role": role_key, "full_name": full_name},
        )
    except DatabaseError as exc:
        logger.error("Error updating profile for %s: %s", email, exc)
        user.delete()
        raise ProvisioningError(f"Falha ao atualizar o perfil do usuário: {exc}") from exc

    log_activity(
        ActivityLog.Level.INFO,
        f"Usuário {email} criado",
        "USERS",
        caller.id,
        caller.email,
        company.pk,
    )
    return user


def reset_user_password(caller: Optional[Viewer], user_id, new_password: str):
    """Set a new password for ``user_id`` and return the auth user."""
    if not user_id or not new_password:
        raise InvalidProvisioningRequest(
            "Parâmetros ausentes: userId e newPassword são obrigatórios."
        )
    user_pk = _as_pk(user_id)
    target = User.objects.select_related("profile").filter(pk=user_pk).first() if user_pk else None
    if target is None:
        raise UserNotFound("Usuário não encontrado.")
    target_profile = getattr(target, "profile", None)
    target_company_id = getattr(target_profile, "company_id", None)
    if not can_manage_company_users(caller, target_company_id):
        raise ProvisioningForbidden("Você não tem permissão para redefinir a senha deste usuário.")
    if getattr(target_profile, "role", None) == Role.DEVELOPER and not caller.is_developer:
        raise ProvisioningForbidden("Você não tem permissão para redefinir a senha deste usuário.")

    target.set_password(new_password)
    target.save(update_fields=["password"])
    log_activity(
        ActivityLog.Level.INFO,
        f"Senha redefinida para {target.email}",
        "USERS",
        caller.id,
        caller.email,
        target_company_id,
    )
    return target
