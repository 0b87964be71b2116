"""
Notices: announcements from developers and company administrators.

Visibility:

- a notice is only shown to the roles listed in ``target_roles``
- developers see notices of every company
- everyone else sees notices of their own company plus broadcasts
  (notices without a company)

Developers may target any role and any company, or broadcast. Everyone else
needs the ``manage_notices`` module, may only target plain users and always
sends to their own company.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from django.core.exceptions import PermissionDenied
from django.db import DatabaseError
from django.db.models import Q

from datascope_app.core.activity import log_activity
from datascope_app.core.models import ActivityLog, Company, ModuleName, Role
from datascope_app.core.permissions import has_module_permission
from datascope_app.core.viewer import Viewer

from .models import Notice, UserNotice

logger = logging.getLogger(__name__)

MODULE = "NOTICES"


class NoticeError(Exception):
    status_code = 400


class NoticeNotFound(NoticeError):
    status_code = 404


class NoticeStorageError(NoticeError):
    status_code = 500


def visible_notices(viewer: Optional[Viewer]) -> list[Notice]:
    if viewer is None:
        return []
    notices = Notice.objects.select_related("company")
    if not viewer.is_developer:
        scope = Q(company__isnull=True)
        if viewer.company_id:
            scope |= Q(company_id=viewer.company_id)
        notices = notices.filter(scope)
    # JSON containment lookups are not portable, target roles are matched here
    return [n for n in notices.order_by("-created_at", "-id") if viewer.role in (n.target_roles or [])]


def read_notice_ids(viewer: Viewer) -> set[int]:
    return set(UserNotice.objects.filter(user_id=viewer.id).values_list("notice_id", flat=True))


def unread_notices(viewer: Optional[Viewer]) -> list[Notice]:
    if viewer is None:
        return []
    read = read_notice_ids(viewer)
    return [notice for notice in visible_notices(viewer) if notice.pk not in read]


def _clean_roles(target_roles: Iterable[str]) -> list[str]:
    roles = list(dict.fromkeys(target_roles or []))
    if not roles:
        raise NoticeError("Selecione pelo menos um perfil de destino.")
    unknown = [role for role in roles if role not in Role.values]
    if unknown:
        raise NoticeError(f"Perfis de destino inválidos: {', '.join(unknown)}")
    return roles


def create_notice(
    viewer: Optional[Viewer],
    message: str,
    target_roles: Iterable[str],
    company_id: Optional[int] = None,
) -> Notice:
    if viewer is None or not has_module_permission(viewer, ModuleName.MANAGE_NOTICES):
        raise PermissionDenied("Você não tem permissão para criar avisos.")

    message = (message or "").strip()
    if not message:
        raise NoticeError("A mensagem do aviso não pode estar vazia.")
    roles = _clean_roles(target_roles)

    if viewer.is_developer:
        if company_id and not Company.objects.filter(pk=company_id).exists():
            raise NoticeError("Empresa não encontrada.")
        company_id = company_id or None
    else:
        if roles != [Role.USER]:
            raise PermissionDenied("Administradores só podem enviar avisos para Usuários.")
        if not viewer.company_id:
            raise NoticeError("Você precisa estar vinculado a uma empresa para enviar avisos.")
        company_id = viewer.company_id

    notice = Notice.objects.create(
        sender_id=viewer.id,
        sender_email=viewer.email or "",
        message=message,
        target_roles=roles,
        company_id=company_id,
    )
    log_activity(
        ActivityLog.Level.INFO,
        f"Aviso (ID: {notice.pk}) enviado para {', '.join(roles)}.",
        MODULE,
        viewer.id,
        viewer.email,
        company_id or viewer.company_id,
    )
    return notice


def mark_notice_read(viewer: Viewer, notice_id) -> Notice:
    """Record that the viewer has read a notice; reading twice is a no-op."""
    notice = next((n for n in visible_notices(viewer) if n.pk == int(notice_id)), None)
    if notice is None:
        raise NoticeNotFound("Aviso não encontrado.")
    try:
        UserNotice.objects.get_or_create(user_id=viewer.id, notice=notice)
    except DatabaseError as exc:
        logger.error("Error marking notice %s as read: %s", notice_id, exc)
        log_activity(
            ActivityLog.Level.ERROR,
            f"Erro ao marcar aviso (ID: {notice_id}) como lido: {exc}",
            MODULE,
            viewer.id,
            viewer.email,
            viewer.company_id,
        )
        raise NoticeStorageError("Não foi possível marcar o aviso como lido.") from exc
    return notice


def delete_notice(viewer: Viewer, notice_id) -> None:
    """Senders and developers can withdraw a notice."""
    notice = Notice.objects.filter(pk=notice_id).first()
    if notice is None:
        raise NoticeNotFound("Aviso não encontrado.")
    if not viewer.is_developer and notice.sender_id != viewer.id:
        raise PermissionDenied("Você só pode excluir avisos enviados por você.")
    notice.delete()
    log_activity(
        ActivityLog.Level.INFO,
        f"Aviso (ID: {notice_id}) excluído.",
        MODULE,
        viewer.id,
        viewer.email,
        notice.company_id or viewer.company_id,
    )
