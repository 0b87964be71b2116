from __future__ import annotations

from django.core.exceptions import PermissionDenied

from .models import Company, ModuleName, ModulePermission, Role
from .viewer import Viewer

DEFAULT_MODULE_PERMISSIONS: dict[str, bool] = {
    ModuleName.CREATE_SURVEY: True,
    ModuleName.MANAGE_SURVEYS: True,
    ModuleName.VIEW_DASHBOARD: True,
    ModuleName.ACCESS_GIVEAWAYS: True,
    ModuleName.MANAGE_COMPANY_SETTINGS: True,
}


def module_permissions_for(viewer: Viewer | None) -> dict[str, bool]:
    """Resolve the module switches for a viewer.

    Developers get every module. Everyone else starts from the defaults, then
    the role-wide ``ModulePermission`` rows, then the per-user overrides stored
    on the profile. Unknown module names are ignored.
    """
    if viewer is None:
        return {}
    if viewer.is_developer:
        return {name: True for name in ModuleName.values}
    resolved = {name: DEFAULT_MODULE_PERMISSIONS.get(name, False) for name in ModuleName.values}
    for row in ModulePermission.objects.filter(role=viewer.role):
        if row.module_name in resolved:
            resolved[row.module_name] = row.enabled
    for name, enabled in (viewer.permissions or {}).items():
        if name in resolved:
            resolved[name] = bool(enabled)
    return resolved


def has_module_permission(viewer: Viewer | None, module: str) -> bool:
    return module_permissions_for(viewer).get(module, False)


def is_company_admin(viewer: Viewer | None, company_id) -> bool:
    if viewer is None or company_id is None:
        return False
    return viewer.role == Role.ADMIN and viewer.company_id == company_id


def can_manage_company_users(viewer: Viewer | None, company_id) -> bool:
    if viewer is None:
        return False
    if viewer.is_developer:
        return True
    return is_company_admin(viewer, company_id) and has_module_permission(
        viewer, ModuleName.MANAGE_USERS
    )


def can_manage_company_settings(viewer: Viewer | None, company: Company) -> bool:
    if viewer is None:
        return False
    if viewer.is_developer:
        return True
    return viewer.company_id == company.pk and has_module_permission(
        viewer, ModuleName.MANAGE_COMPANY_SETTINGS
    )


def require_module(viewer: Viewer | None, module: str) -> None:
    if not has_module_permission(viewer, module):
        raise PermissionDenied("Você não tem permissão para acessar este módulo.")
