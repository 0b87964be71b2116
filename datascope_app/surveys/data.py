"""
Survey read side.

``SurveyDataStore`` loads the surveys a viewer may see, flattens the nested
relational result into ``SurveyRecord`` projections and keeps itself fresh
through the in-process change feed while mounted.

Scope rules:

- developers see every company, the hint is ignored
- everyone else uses the company hint, falling back to their own company
- without an effective company nothing is queried and the list is empty

Read failures never propagate: they are logged as ERROR activity and leave
the store in an empty, consistent state.
"""

from __future__ import annotations

import logging
from typing import Optional

from django.db import DatabaseError
from django.db.models import Count, Prefetch

from datascope_app.core.activity import log_activity
from datascope_app.core.models import ActivityLog
from datascope_app.core.realtime import Subscription, subscribe_to_changes
from datascope_app.core.viewer import Viewer

from .models import Question, Survey, SurveyResponse
from .records import AnswerRecord, QuestionRecord, ResponseRecord, SurveyRecord

logger = logging.getLogger(__name__)

UNKNOWN_COMPANY_NAME = "N/A"
UNKNOWN_CREATOR_NAME = "Usuário Desconhecido"


def _company_id(company) -> Optional[int]:
    return getattr(company, "pk", None) if company is not None else None


def scope_company_id(viewer: Optional[Viewer], company) -> Optional[int]:
    """Company hint a fetch should use for the given identity."""
    if viewer is not None and viewer.is_developer:
        return None
    if _company_id(company):
        return _company_id(company)
    if viewer is not None and viewer.company_id:
        return viewer.company_id
    return None


def to_survey_record(survey: Survey) -> SurveyRecord:
    questions = sorted(
        (
            QuestionRecord(
                id=q.pk,
                text=q.text,
                type=q.type,
                options=q.options or None,
                position=q.position or 0,
            )
            for q in survey.questions.all()
        ),
        key=lambda q: q.position or 0,
    )
    creator_name = None
    if survey.created_by is not None:
        profile = getattr(survey.created_by, "profile", None)
        creator_name = getattr(profile, "full_name", None)
    return SurveyRecord(
        id=survey.pk,
        title=survey.title,
        company_id=survey.company_id,
        created_by=survey.created_by_id,
        created_at=survey.created_at,
        questions=questions,
        response_count=getattr(survey, "response_count", 0) or 0,
        company_name=getattr(survey.company, "name", None) or UNKNOWN_COMPANY_NAME,
        created_by_name=creator_name or UNKNOWN_CREATOR_NAME,
    )


def _with_details(queryset):
    return (
        queryset.select_related("company", "created_by__profile")
        .prefetch_related(
            Prefetch("questions", queryset=Question.objects.order_by("position", "id"))
        )
        .annotate(response_count=Count("responses", distinct=True))
    )


def load_survey_record(survey_id) -> Optional[SurveyRecord]:
    survey = _with_details(Survey.objects.filter(pk=survey_id)).first()
    return to_survey_record(survey) if survey is not None else None


class SurveyDataStore:
    def __init__(self, viewer: Optional[Viewer] = None, company=None):
        self.viewer = viewer
        self.company = company
        self.surveys: list[SurveyRecord] = []
        self.survey_responses: list[ResponseRecord] = []
        self.loading_surveys = True
        self._subscription: Optional[Subscription] = None

    def _log(self, level: str, message: str, viewer: Optional[Viewer] = None, company=None) -> None:
        viewer = viewer if viewer is not None else self.viewer
        log_activity(
            level,
            message,
            "SURVEYS",
            getattr(viewer, "id", None),
            getattr(viewer, "email", None),
            _company_id(company if company is not None else self.company),
        )

    def fetch_surveys(
        self,
        company_id_hint: Optional[int],
        viewer: Optional[Viewer],
        viewer_company=None,
    ) -> list[SurveyRecord]:
        """Load and flatten the surveys visible to ``viewer``, newest first."""
        self.loading_surveys = True
        try:
            is_developer = viewer is not None and viewer.is_developer
            effective_company_id = company_id_hint
            if not is_developer and not effective_company_id and viewer is not None:
                effective_company_id = viewer.company_id

            if not is_developer and not effective_company_id:
                self.surveys = []
                return []

            try:
                queryset = Survey.objects.visible_to(viewer)
                if not is_developer:
                    queryset = queryset.for_company(effective_company_id)
                queryset = _with_details(queryset).order_by("-created_at", "-id")
                fetched = [to_survey_record(survey) for survey in queryset]
            except DatabaseError as exc:
                logger.error("Error fetching surveys for company %s: %s", effective_company_id, exc)
                self._log(
                    ActivityLog.Level.ERROR,
                    f"Erro ao buscar pesquisas para a empresa {effective_company_id}: {exc}",
                    viewer,
                    viewer_company,
                )
                self.surveys = []
                return []

            self._log(
                ActivityLog.Level.INFO,
                f"Pesquisas carregadas para a empresa {effective_company_id}.",
                viewer,
                viewer_company,
            )
            self.surveys = fetched
            return fetched
        finally:
            self.loading_surveys = False

    def fetch_survey_responses(self, survey_id) -> None:
        """Load every response of ``survey_id`` into ``survey_responses``."""
        try:
            queryset = (
                SurveyResponse.objects.filter(survey_id=survey_id)
                .prefetch_related("answers")
                .order_by("created_at", "id")
            )
            fetched = [
                ResponseRecord(
                    id=response.pk,
                    survey_id=response.survey_id,
                    respondent_id=response.respondent_id,
                    created_at=response.created_at,
                    answers=[
                        AnswerRecord(question_id=answer.question_id, value=answer.value)
                        for answer in response.answers.all()
                    ],
                )
                for response in queryset
            ]
        except DatabaseError as exc:
            logger.error("Error fetching responses for survey %s: %s", survey_id, exc)
            self._log(
                ActivityLog.Level.ERROR,
                f"Erro ao buscar respostas para a pesquisa {survey_id}: {exc}",
            )
            self.survey_responses = []
            return

        if fetched:
            self._log(ActivityLog.Level.INFO, f"Respostas carregadas para a pesquisa {survey_id}.")
        else:
            self._log(ActivityLog.Level.INFO, f"Nenhuma resposta encontrada para a pesquisa {survey_id}.")
        self.survey_responses = fetched

    # live subscription

    def mount(self, viewer: Optional[Viewer] = None, company=None) -> list[SurveyRecord]:
        """Fetch for the given identity and start following survey changes.

        Mounting again (for example after the viewer's company changed) tears
        the previous subscription down first, so at most one is ever active.
        """
        if viewer is not None:
            self.viewer = viewer
        if company is not None or viewer is not None:
            self.company = company
        self.teardown()
        surveys = self.fetch_surveys(
            scope_company_id(self.viewer, self.company), self.viewer, self.company
        )
        self._subscription = subscribe_to_changes(Survey, self._on_survey_change)
        return surveys

    def _on_survey_change(self, event) -> None:
        # always resolved from the current identity, not the one at mount time
        self.fetch_surveys(scope_company_id(self.viewer, self.company), self.viewer, self.company)

    @property
    def is_subscribed(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def teardown(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
