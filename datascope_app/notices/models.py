from __future__ import annotations

from django.contrib.auth import get_user_model
from django.db import models

from datascope_app.core.models import Company

User = get_user_model()


class Notice(models.Model):
    """Announcement sent to one or more roles.

    ``company`` scopes the notice to a single company; a notice without a
    company is a broadcast to every company.
    """

    sender = models.ForeignKey(
        User,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="sent_notices",
    )
    sender_email = models.EmailField(blank=True, default="")
    message = models.TextField()
    # list of Role values
    target_roles = models.JSONField(default=list)
    company = models.ForeignKey(
        Company,
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="notices",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:  # pragma: no cover
        return self.message[:50]


class UserNotice(models.Model):
    """Marks a notice as read by one user."""

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="read_notices")
    notice = models.ForeignKey(Notice, on_delete=models.CASCADE, related_name="reads")
    read_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "notice"], name="unique_user_notice")
        ]
