from __future__ import annotations

from typing import Any, Optional

from django.core.exceptions import PermissionDenied
from django.db.models import QuerySet

from .activity import log_activity
from .models import ActivityLog, Company, Profile, Role, Status
from .permissions import can_manage_company_settings
from .viewer import Viewer

EDITABLE_COMPANY_FIELDS = (
    "name",
    "cnpj",
    "phone",
    "address_street",
    "address_neighborhood",
    "address_complement",
    "address_city",
    "address_state",
)


class CompanyError(Exception):
    status_code = 400


class CompanyAlreadyLinked(CompanyError):
    status_code = 409


def companies_visible_to(viewer: Optional[Viewer]) -> QuerySet:
    if viewer is None:
        return Company.objects.none()
    if viewer.is_developer:
        return Company.objects.all()
    return Company.objects.filter(pk=viewer.company_id) if viewer.company_id else Company.objects.none()


def create_company_for_viewer(viewer: Viewer, name: str) -> Company:
    """Create a company and make the viewer its administrator."""
    name = (name or "").strip()
    if not name:
        raise CompanyError("O nome da empresa não pode estar vazio.")
    if viewer.company_id:
        raise CompanyAlreadyLinked("Você já está vinculado a uma empresa.")
    company = Company.objects.create(name=name)
    Profile.objects.filter(user_id=viewer.id).update(company=company, role=Role.ADMIN)
    log_activity(
        ActivityLog.Level.INFO,
        f"Empresa '{company.name}' criada",
        "COMPANIES",
        viewer.id,
        viewer.email,
        company.pk,
    )
    return company


def update_company(viewer: Viewer, company: Company, fields: dict[str, Any]) -> Company:
    if not can_manage_company_settings(viewer, company):
        raise PermissionDenied("Você não tem permissão para alterar esta empresa.")
    unknown = set(fields) - set(EDITABLE_COMPANY_FIELDS)
    if unknown:
        raise CompanyError(f"Campos não editáveis: {', '.join(sorted(unknown))}")
    if "name" in fields and not str(fields["name"] or "").strip():
        raise CompanyError("O nome da empresa não pode estar vazio.")
    for name, value in fields.items():
        setattr(company, name, value if value is not None else "")
    company.save()
    log_activity(
        ActivityLog.Level.INFO,
        f"Empresa '{company.name}' atualizada",
        "COMPANIES",
        viewer.id,
        viewer.email,
        company.pk,
    )
    return company


def toggle_company_status(viewer: Viewer, company: Company) -> Company:
    if not viewer.is_developer:
        raise PermissionDenied("Apenas desenvolvedores podem alterar o status de empresas.")
    company.status = Status.INACTIVE if company.status == Status.ACTIVE else Status.ACTIVE
    company.save(update_fields=["status"])
    log_activity(
        ActivityLog.Level.INFO,
        f"Status da empresa '{company.name}' alterado para {company.status}",
        "COMPANIES",
        viewer.id,
        viewer.email,
        company.pk,
    )
    return company
