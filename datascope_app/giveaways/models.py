from __future__ import annotations

from django.contrib.auth import get_user_model
from django.db import models

from datascope_app.core.models import Company
from datascope_app.surveys.models import Survey, SurveyResponse

User = get_user_model()


class Prize(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="prizes")
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    # placing the prize is drawn for; unranked prizes go last
    rank = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = [models.F("rank").asc(nulls_last=True), "name", "id"]

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class GiveawayWinner(models.Model):
    """One drawn placing; contact data is copied from the winning response."""

    survey = models.ForeignKey(Survey, on_delete=models.CASCADE, related_name="giveaway_winners")
    prize = models.ForeignKey(
        Prize, null=True, blank=True, on_delete=models.SET_NULL, related_name="winners"
    )
    winner_response = models.ForeignKey(
        SurveyResponse,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="giveaway_wins",
    )
    winner_name = models.CharField(max_length=255)
    winner_email = models.CharField(max_length=255, blank=True, default="")
    winner_phone = models.CharField(max_length=64, blank=True, default="")
    rank = models.PositiveIntegerField()
    drawn_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name="giveaway_draws"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "rank"]
