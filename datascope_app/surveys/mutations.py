"""
Survey write side.

Every operation here is a short sequence of independent writes, each one
committed on its own. A failure part-way through is reported to the user and
the activity log but earlier steps are not undone: an edit that fails after
deleting the old questions leaves the survey without questions, and a response
whose answers fail to insert stays behind without answers.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from django.db import DatabaseError

from datascope_app.core.activity import log_activity
from datascope_app.core.models import ActivityLog
from datascope_app.core.notifications import Notifier
from datascope_app.core.viewer import Viewer

from .data import SurveyDataStore, scope_company_id
from .models import Answer, Question, Survey, SurveyResponse
from .records import AnswerRecord, SurveyDraft, SurveyRecord

logger = logging.getLogger(__name__)


def is_blank(value: Any) -> bool:
    """True for a missing answer: None, whitespace-only text or an empty list."""
    if value is None:
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    if isinstance(value, (list, tuple)) and len(value) == 0:
        return True
    return False


def missing_questions(survey: SurveyRecord, answers: Iterable[AnswerRecord]):
    by_question = {}
    for answer in answers:
        by_question.setdefault(answer.question_id, answer)
    return [
        question
        for question in survey.questions
        if question.id not in by_question or is_blank(by_question[question.id].value)
    ]


class SurveyMutationService:
    def __init__(
        self,
        viewer: Optional[Viewer],
        company,
        store: SurveyDataStore,
        notifier: Notifier,
    ):
        self.viewer = viewer
        self.company = company
        self.store = store
        self.notifier = notifier

    @property
    def company_id(self) -> Optional[int]:
        return getattr(self.company, "pk", None)

    def _log(self, level: str, message: str, module: str = "SURVEYS", viewer: Optional[Viewer] = None) -> None:
        viewer = viewer if viewer is not None else self.viewer
        log_activity(
            level,
            message,
            module,
            getattr(viewer, "id", None),
            getattr(viewer, "email", None),
            self.company_id,
        )

    def _refetch_surveys(self, viewer: Optional[Viewer] = None) -> None:
        viewer = viewer if viewer is not None else self.viewer
        self.store.fetch_surveys(scope_company_id(viewer, self.company), viewer, self.company)

    @staticmethod
    def _question_rows(survey_id, draft: SurveyDraft) -> list[Question]:
        return [
            Question(
                survey_id=survey_id,
                text=question.text,
                type=question.type,
                options=question.options or None,
                position=index,
            )
            for index, question in enumerate(draft.questions)
        ]

    def handle_save_survey(self, survey_data: SurveyDraft, editing_survey_id=None) -> None:
        """Create a survey, or replace title and questions of an existing one."""
        viewer = self.viewer
        if viewer is None:
            self.notifier.error("Usuário não identificado para salvar a pesquisa.")
            self._log(ActivityLog.Level.ERROR, "Tentativa de salvar pesquisa sem usuário identificado.")
            return

        survey_company_id = viewer.company_id
        if not survey_company_id:
            self.notifier.error(
                "Você precisa estar vinculado a uma empresa para criar ou editar pesquisas."
            )
            self._log(
                ActivityLog.Level.ERROR,
                "Tentativa de salvar pesquisa sem company_id para o usuário.",
            )
            return

        try:
            if editing_survey_id:
                # saved through the instance so the change feed sees an UPDATE
                survey = Survey.objects.get(pk=editing_survey_id)
                survey.title = survey_data.title
                survey.company_id = survey_company_id
                survey.save(update_fields=["title", "company"])
                Question.objects.filter(survey_id=editing_survey_id).delete()
                Question.objects.bulk_create(self._question_rows(editing_survey_id, survey_data))
                self.notifier.success("Pesquisa atualizada com sucesso!")
                self._log(
                    ActivityLog.Level.INFO,
                    f"Pesquisa '{survey_data.title}' (ID: {editing_survey_id}) atualizada com sucesso.",
                )
            else:
                survey = Survey.objects.create(
                    title=survey_data.title,
                    company_id=survey_company_id,
                    created_by_id=viewer.id,
                )
                Question.objects.bulk_create(self._question_rows(survey.pk, survey_data))
                self.notifier.success("Pesquisa criada com sucesso!")
                self._log(
                    ActivityLog.Level.INFO,
                    f"Nova pesquisa '{survey_data.title}' (ID: {survey.pk}) criada com sucesso.",
                )
            self._refetch_surveys()
        except (DatabaseError, Survey.DoesNotExist) as exc:
            logger.error("Error saving survey %r: %s", survey_data.title, exc)
            self.notifier.error(f"Erro ao salvar a pesquisa: {exc}")
            self._log(
                ActivityLog.Level.ERROR,
                f"Erro inesperado ao salvar pesquisa '{survey_data.title}': {exc}",
            )

    def handle_delete_survey(self, survey_id) -> bool:
        """Delete a survey; questions, responses and answers go with it."""
        try:
            Survey.objects.filter(pk=survey_id).delete()
        except DatabaseError as exc:
            logger.error("Error deleting survey %s: %s", survey_id, exc)
            self.notifier.error(f"Erro ao excluir a pesquisa: {exc}")
            self._log(ActivityLog.Level.ERROR, f"Erro ao excluir pesquisa (ID: {survey_id}): {exc}")
            return False

        self.notifier.success("Pesquisa excluída com sucesso!")
        self._refetch_surveys()
        self._log(ActivityLog.Level.INFO, f"Pesquisa (ID: {survey_id}) excluída com sucesso.")
        return True

    def handle_save_response(
        self,
        answers: list[AnswerRecord],
        selected_survey: Optional[SurveyRecord],
        viewer: Optional[Viewer],
    ) -> bool:
        """Validate and store one response with its answers.

        Returns True only when both the response row and its answers were
        written.
        """
        if selected_survey is None or viewer is None:
            self.notifier.error("Usuário ou pesquisa não identificados para salvar a resposta.")
            self._log(
                ActivityLog.Level.ERROR,
                "Tentativa de salvar resposta sem pesquisa ou usuário identificados.",
                "SURVEY_RESPONSES",
                viewer,
            )
            return False

        missing = missing_questions(selected_survey, answers)
        if missing:
            missing_texts = ", ".join(question.text for question in missing)
            self.notifier.error(
                f"Por favor, responda a todas as perguntas obrigatórias: {missing_texts}"
            )
            self._log(
                ActivityLog.Level.WARN,
                f"Tentativa de salvar resposta com campos obrigatórios ausentes para pesquisa "
                f"'{selected_survey.title}'. Perguntas: {missing_texts}",
                "SURVEY_RESPONSES",
                viewer,
            )
            return False

        try:
            response = SurveyResponse.objects.create(
                survey_id=selected_survey.id, respondent_id=viewer.id
            )
        except DatabaseError as exc:
            logger.error("Error inserting response for survey %s: %s", selected_survey.id, exc)
            self.notifier.error(f"Erro ao enviar a resposta da pesquisa: {exc}")
            self._log(
                ActivityLog.Level.ERROR,
                f"Erro ao inserir resposta principal para pesquisa '{selected_survey.title}': {exc}",
                "SURVEY_RESPONSES",
                viewer,
            )
            return False

        if response is None or not response.pk:
            self._log(
                ActivityLog.Level.ERROR,
                f"Resposta nula após a inserção da resposta principal para pesquisa "
                f"'{selected_survey.title}'.",
                "SURVEY_RESPONSES",
                viewer,
            )
            return False

        try:
            Answer.objects.bulk_create(
                [
                    Answer(response_id=response.pk, question_id=answer.question_id, value=answer.value)
                    for answer in answers
                ]
            )
        except DatabaseError as exc:
            logger.error("Error inserting answers for response %s: %s", response.pk, exc)
            self.notifier.error(f"Erro ao salvar as respostas detalhadas: {exc}")
            self._log(
                ActivityLog.Level.ERROR,
                f"Erro ao inserir respostas detalhadas para pesquisa '{selected_survey.title}' "
                f"(Resposta ID: {response.pk}): {exc}",
                "SURVEY_RESPONSES",
                viewer,
            )
            return False

        self._refetch_surveys(viewer)
        self.store.fetch_survey_responses(selected_survey.id)
        self.notifier.success("Resposta enviada com sucesso!")
        self._log(
            ActivityLog.Level.INFO,
            f"Resposta enviada com sucesso para pesquisa '{selected_survey.title}' "
            f"(Resposta ID: {response.pk}).",
            "SURVEY_RESPONSES",
            viewer,
        )
        return True
