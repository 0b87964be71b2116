from __future__ import annotations

from django.core.exceptions import PermissionDenied

from datascope_app.core.models import ModuleName
from datascope_app.core.permissions import has_module_permission
from datascope_app.core.viewer import Viewer

from .models import Survey


def can_view_survey(viewer: Viewer | None, survey: Survey) -> bool:
    if viewer is None:
        return False
    if viewer.is_developer:
        return True
    return bool(viewer.company_id) and survey.company_id == viewer.company_id


def can_respond_survey(viewer: Viewer | None, survey: Survey) -> bool:
    return can_view_survey(viewer, survey)


def can_edit_survey(viewer: Viewer | None, survey: Survey) -> bool:
    # Surveys never move between companies, developers included
    if viewer is None or not viewer.company_id:
        return False
    if survey.company_id != viewer.company_id:
        return False
    return has_module_permission(viewer, ModuleName.MANAGE_SURVEYS)


def can_delete_survey(viewer: Viewer | None, survey: Survey) -> bool:
    if viewer is not None and viewer.is_developer:
        return True
    return can_edit_survey(viewer, survey)


def require_can_view(viewer: Viewer | None, survey: Survey) -> None:
    if not can_view_survey(viewer, survey):
        raise PermissionDenied("Você não tem permissão para ver esta pesquisa.")


def require_can_edit(viewer: Viewer | None, survey: Survey) -> None:
    if not can_edit_survey(viewer, survey):
        raise PermissionDenied("Você não tem permissão para editar esta pesquisa.")


def require_can_delete(viewer: Viewer | None, survey: Survey) -> None:
    if not can_delete_survey(viewer, survey):
        raise PermissionDenied("Você não tem permissão para excluir esta pesquisa.")
