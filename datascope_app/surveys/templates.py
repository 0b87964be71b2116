"""
Survey templates.

Templates are company-independent survey skeletons (title plus an ordered
question list) that can be copied into a new survey. The service follows the
same contract as ``SurveyMutationService``: every outcome is reported through
the notifier and the activity log under ``SURVEY_TEMPLATES``.
"""

from __future__ import annotations

import logging
from typing import Optional

from django.db import DatabaseError

from datascope_app.core.activity import log_activity
from datascope_app.core.models import ActivityLog
from datascope_app.core.notifications import Notifier
from datascope_app.core.viewer import Viewer

from .models import SurveyTemplate
from .records import QuestionDraft, SurveyDraft, TemplateRecord

logger = logging.getLogger(__name__)

MODULE = "SURVEY_TEMPLATES"


def to_template_record(template: SurveyTemplate) -> TemplateRecord:
    questions = [
        QuestionDraft(
            text=item.get("text", ""),
            type=item.get("type", ""),
            options=item.get("options") or None,
        )
        for item in (template.questions or [])
        if isinstance(item, dict)
    ]
    return TemplateRecord(id=template.pk, title=template.title, questions=questions)


def serialize_questions(draft: SurveyDraft) -> list[dict]:
    return [
        {"text": question.text, "type": question.type, "options": question.options or None}
        for question in draft.questions
    ]


def is_complete(draft: SurveyDraft) -> bool:
    """A template needs a title and at least one question, all with text."""
    if not (draft.title or "").strip() or not draft.questions:
        return False
    return all((question.text or "").strip() for question in draft.questions)


class SurveyTemplateService:
    def __init__(self, viewer: Optional[Viewer], company, notifier: Notifier):
        self.viewer = viewer
        self.company = company
        self.notifier = notifier
        self.templates: list[TemplateRecord] = []

    def _log(self, level: str, message: str) -> None:
        log_activity(
            level,
            message,
            MODULE,
            getattr(self.viewer, "id", None),
            getattr(self.viewer, "email", None),
            getattr(self.company, "pk", None),
        )

    def fetch_templates(self) -> list[TemplateRecord]:
        """Reload every template; on failure the previous list is kept."""
        try:
            rows = list(SurveyTemplate.objects.order_by("title", "id"))
        except DatabaseError as exc:
            logger.error("Error fetching survey templates: %s", exc)
            self._log(ActivityLog.Level.ERROR, f"Erro ao buscar templates de pesquisa: {exc}")
            return self.templates

        self.templates = [to_template_record(row) for row in rows]
        self._log(ActivityLog.Level.INFO, "Templates de pesquisa carregados.")
        return self.templates

    def handle_save_template(self, template_data: SurveyDraft, editing_template_id=None) -> bool:
        if self.viewer is None:
            self.notifier.error("Usuário não identificado para salvar o modelo.")
            self._log(ActivityLog.Level.ERROR, "Tentativa de salvar modelo sem usuário logado.")
            return False

        if not is_complete(template_data):
            self.notifier.error(
                "Por favor, forneça um título e garanta que todas as perguntas tenham texto."
            )
            self._log(
                ActivityLog.Level.WARN,
                f"Tentativa de salvar modelo incompleto '{template_data.title}'.",
            )
            return False

        title = template_data.title.strip()
        try:
            if editing_template_id:
                template = SurveyTemplate.objects.get(pk=editing_template_id)
                template.title = title
                template.questions = serialize_questions(template_data)
                template.save(update_fields=["title", "questions", "updated_at"])
                self.notifier.success("Modelo atualizado com sucesso!")
                self._log(
                    ActivityLog.Level.INFO,
                    f"Modelo '{title}' (ID: {editing_template_id}) atualizado com sucesso.",
                )
            else:
                SurveyTemplate.objects.create(
                    title=title, questions=serialize_questions(template_data)
                )
                self.notifier.success("Modelo criado com sucesso!")
                self._log(ActivityLog.Level.INFO, f"Novo modelo '{title}' criado com sucesso.")
        except (DatabaseError, SurveyTemplate.DoesNotExist) as exc:
            logger.error("Error saving survey template %r: %s", title, exc)
            self.notifier.error(f"Erro ao salvar modelo: {exc}")
            self._log(ActivityLog.Level.ERROR, f"Erro ao salvar modelo '{title}': {exc}")
            return False

        self.fetch_templates()
        return True

    def handle_delete_template(self, template_id) -> bool:
        if self.viewer is None:
            self.notifier.error("Usuário não identificado para excluir o modelo.")
            self._log(ActivityLog.Level.ERROR, "Tentativa de excluir modelo sem usuário logado.")
            return False

        try:
            SurveyTemplate.objects.filter(pk=template_id).delete()
        except DatabaseError as exc:
            logger.error("Error deleting survey template %s: %s", template_id, exc)
            self.notifier.error(f"Erro ao excluir modelo: {exc}")
            self._log(
                ActivityLog.Level.ERROR, f"Erro ao excluir modelo (ID: {template_id}): {exc}"
            )
            return False

        self.notifier.success("Modelo excluído com sucesso!")
        self._log(ActivityLog.Level.INFO, f"Modelo (ID: {template_id}) excluído com sucesso.")
        self.fetch_templates()
        return True
