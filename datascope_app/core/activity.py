"""
Activity log service.

Business events are written to the ``ActivityLog`` table so developers and
company administrators can audit what happened, and mirrored to the stdlib
logger. Logging is fire-and-forget: a failure to persist the event is
reported through ``logging`` and never reaches the caller.

Modules in use: ``SURVEYS``, ``SURVEY_RESPONSES``, ``USERS``, ``COMPANIES``,
``AUTH``, ``CHAT``, ``SURVEY_TEMPLATES``, ``NOTICES``, ``GIVEAWAYS``.
"""

import logging
from typing import Optional

from .models import ActivityLog

logger = logging.getLogger(__name__)

_LEVELS = {
    ActivityLog.Level.DEBUG: logging.DEBUG,
    ActivityLog.Level.INFO: logging.INFO,
    ActivityLog.Level.WARN: logging.WARNING,
    ActivityLog.Level.ERROR: logging.ERROR,
}


def log_activity(
    level: str,
    message: str,
    module: str,
    user_id: Optional[int] = None,
    user_email: Optional[str] = None,
    company_id: Optional[int] = None,
) -> None:
    """Record an activity event.

    Args:
        level: One of ``DEBUG``, ``INFO``, ``WARN``, ``ERROR``
        message: Human readable description
        module: Functional area the event belongs to
        user_id: Acting user, when known
        user_email: Acting user's e-mail, kept even if the user is deleted
        company_id: Company the event belongs to, when known
    """
    logger.log(
        _LEVELS.get(level, logging.INFO),
        "[%s] %s (user=%s company=%s)",
        module,
        message,
        user_email or user_id,
        company_id,
    )
    try:
        ActivityLog.objects.create(
            level=level,
            message=message,
            module=module,
            user_id=user_id,
            user_email=user_email or "",
            company_id=company_id,
        )
    except Exception:
        logger.exception("Failed to persist activity log entry for %s", module)
