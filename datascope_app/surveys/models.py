from __future__ import annotations

from django.contrib.auth import get_user_model
from django.db import models

from datascope_app.core.models import Company

User = get_user_model()


class SurveyQuerySet(models.QuerySet):
    def for_company(self, company_id):
        return self.filter(company_id=company_id)

    def visible_to(self, viewer):
        """Rows a viewer may read: developers see all, others their company only."""
        if viewer is None:
            return self.none()
        if viewer.is_developer:
            return self
        if not viewer.company_id:
            return self.none()
        return self.filter(company_id=viewer.company_id)


class Survey(models.Model):
    title = models.CharField(max_length=255)
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="surveys")
    created_by = models.ForeignKey(
        User,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="surveys",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = SurveyQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["company", "created_at"], name="surveys_sur_company_5e8c21_idx")
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.title


class Question(models.Model):
    class Type(models.TextChoices):
        SHORT_TEXT = "short_text", "Texto Curto"
        LONG_TEXT = "long_text", "Texto Longo"
        PHONE = "phone", "Telefone"
        EMAIL = "email", "Email"
        MULTIPLE_CHOICE = "multiple_choice", "Múltipla Escolha"
        CHECKBOX = "checkbox", "Caixas de Seleção"
        RATING = "rating", "Avaliação (1-10)"

    survey = models.ForeignKey(Survey, on_delete=models.CASCADE, related_name="questions")
    text = models.TextField()
    type = models.CharField(max_length=32, choices=Type.choices)
    # choices for multiple_choice/checkbox; None for free-form types
    options = models.JSONField(null=True, blank=True)
    position = models.PositiveIntegerField(null=True, blank=True, default=0)

    class Meta:
        ordering = ["survey", "position", "id"]

    def __str__(self) -> str:  # pragma: no cover
        return self.text


class SurveyResponse(models.Model):
    survey = models.ForeignKey(Survey, on_delete=models.CASCADE, related_name="responses")
    respondent = models.ForeignKey(
        User,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="survey_responses",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]


class Answer(models.Model):
    response = models.ForeignKey(SurveyResponse, on_delete=models.CASCADE, related_name="answers")
    # questions are replaced on every survey edit; the answer outlives them
    question = models.ForeignKey(
        Question,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="answers",
    )
    value = models.JSONField(null=True, blank=True)

    class Meta:
        ordering = ["id"]


class SurveyTemplate(models.Model):
    """Reusable survey skeleton shared by every company."""

    title = models.CharField(max_length=255)
    # [{"text": ..., "type": ..., "options": [...] | None}] in editor order
    questions = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["title", "id"]

    def __str__(self) -> str:  # pragma: no cover
        return self.title
