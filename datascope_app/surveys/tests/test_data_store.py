"""
Tests for the survey read side: company scoping, flattening and failures.
"""

from unittest import mock

from django.db import DatabaseError
import pytest

from datascope_app.core.models import ActivityLog, Company
from datascope_app.surveys.data import SurveyDataStore, load_survey_record, scope_company_id
from datascope_app.surveys.models import Answer, Question, Survey, SurveyResponse


def make_survey(company, creator=None, title="Pesquisa", positions=(0,)):
    survey = Survey.objects.create(title=title, company=company, created_by=creator)
    for position in positions:
        Question.objects.create(
            survey=survey, text=f"Pergunta {position}", type=Question.Type.SHORT_TEXT, position=position
        )
    return survey


@pytest.mark.django_db
class TestFetchSurveysScope:
    def test_viewer_without_company_gets_nothing_and_no_query(
        self, make_user, viewer_for, company_a, django_assert_num_queries
    ):
        make_survey(company_a)
        viewer = viewer_for(make_user("lonely@example.com"))
        store = SurveyDataStore(viewer)

        with django_assert_num_queries(0):
            result = store.fetch_surveys(None, viewer, None)

        assert result == []
        assert store.surveys == []
        assert store.loading_surveys is False

    def test_missing_viewer_gets_nothing(self, company_a, django_assert_num_queries):
        make_survey(company_a)
        store = SurveyDataStore()
        with django_assert_num_queries(0):
            assert store.fetch_surveys(None, None) == []

    def test_member_sees_only_own_company(self, member_a, viewer_for, company_a, company_b):
        own = make_survey(company_a, title="Da A")
        make_survey(company_b, title="Da B")
        viewer = viewer_for(member_a)

        result = SurveyDataStore(viewer, company_a).fetch_surveys(None, viewer, company_a)

        assert [s.id for s in result] == [own.pk]

    def test_hint_for_other_company_does_not_leak(self, member_a, viewer_for, company_a, company_b):
        make_survey(company_b, title="Da B")
        viewer = viewer_for(member_a)

        result = SurveyDataStore(viewer, company_a).fetch_surveys(company_b.pk, viewer, company_a)

        assert result == []

    def test_developer_sees_every_company_and_ignores_hint(self, developer, viewer_for, company_a, company_b):
        make_survey(company_a)
        make_survey(company_b)
        viewer = viewer_for(developer)

        result = SurveyDataStore(viewer).fetch_surveys(company_a.pk, viewer)

        assert {s.company_id for s in result} == {company_a.pk, company_b.pk}

    def test_scope_company_id(self, developer, member_a, make_user, viewer_for, company_a, company_b):
        assert scope_company_id(viewer_for(developer), company_a) is None
        assert scope_company_id(viewer_for(member_a), company_b) == company_b.pk
        assert scope_company_id(viewer_for(member_a), None) == company_a.pk
        assert scope_company_id(viewer_for(make_user("x@example.com")), None) is None
        assert scope_company_id(None, None) is None

    def test_success_is_logged(self, member_a, viewer_for, company_a):
        viewer = viewer_for(member_a)
        SurveyDataStore(viewer, company_a).fetch_surveys(None, viewer, company_a)

        log = ActivityLog.objects.get(module="SURVEYS")
        assert log.level == ActivityLog.Level.INFO
        assert log.message == f"Pesquisas carregadas para a empresa {company_a.pk}."
        assert log.company_id == company_a.pk


@pytest.mark.django_db
class TestFlattening:
    def test_questions_sorted_by_position(self, member_a, viewer_for, company_a):
        make_survey(company_a, positions=(2, 0, 1))
        viewer = viewer_for(member_a)

        (record,) = SurveyDataStore(viewer, company_a).fetch_surveys(None, viewer, company_a)

        assert [q.position for q in record.questions] == [0, 1, 2]

    def test_names_and_response_count(self, member_a, viewer_for, company_a):
        survey = make_survey(company_a, creator=member_a)
        SurveyResponse.objects.create(survey=survey, respondent=member_a)
        SurveyResponse.objects.create(survey=survey, respondent=None)
        viewer = viewer_for(member_a)

        (record,) = SurveyDataStore(viewer, company_a).fetch_surveys(None, viewer, company_a)

        assert record.company_name == "Empresa A"
        assert record.created_by_name == "Bruno Usuário"
        assert record.response_count == 2

    def test_defaults_for_unknown_names(self, make_user, viewer_for):
        nameless = Company.objects.create(name="")
        make_survey(nameless, creator=None)
        viewer = viewer_for(make_user("n@example.com", company=nameless))

        (record,) = SurveyDataStore(viewer).fetch_surveys(nameless.pk, viewer)

        assert record.company_name == "N/A"
        assert record.created_by_name == "Usuário Desconhecido"
        assert record.response_count == 0

    def test_newest_first(self, member_a, viewer_for, company_a):
        first = make_survey(company_a, title="Primeira")
        second = make_survey(company_a, title="Segunda")
        viewer = viewer_for(member_a)

        result = SurveyDataStore(viewer, company_a).fetch_surveys(None, viewer, company_a)

        assert [s.id for s in result] == [second.pk, first.pk]

    def test_fetch_twice_is_stable(self, member_a, viewer_for, company_a):
        make_survey(company_a, positions=(1, 0))
        viewer = viewer_for(member_a)
        store = SurveyDataStore(viewer, company_a)

        assert store.fetch_surveys(None, viewer, company_a) == store.fetch_surveys(None, viewer, company_a)

    def test_load_survey_record(self, company_a):
        survey = make_survey(company_a, positions=(1, 0))
        record = load_survey_record(survey.pk)
        assert record.title == "Pesquisa"
        assert [q.position for q in record.questions] == [0, 1]
        assert load_survey_record(survey.pk + 1000) is None


@pytest.mark.django_db
class TestFetchFailures:
    def test_survey_fetch_error_yields_empty_list_and_error_log(self, member_a, viewer_for, company_a):
        make_survey(company_a)
        viewer = viewer_for(member_a)
        store = SurveyDataStore(viewer, company_a)
        store.surveys = ["stale"]

        with mock.patch.object(Survey.objects, "visible_to", side_effect=DatabaseError("boom")):
            result = store.fetch_surveys(None, viewer, company_a)

        assert result == []
        assert store.surveys == []
        assert store.loading_surveys is False
        log = ActivityLog.objects.get(level=ActivityLog.Level.ERROR)
        assert "boom" in log.message
        assert log.user_id == member_a.pk

    def test_responses_fetch(self, member_a, viewer_for, company_a):
        survey = make_survey(company_a)
        question = survey.questions.get()
        response = SurveyResponse.objects.create(survey=survey, respondent=member_a)
        Answer.objects.create(response=response, question=question, value="ok")
        store = SurveyDataStore(viewer_for(member_a), company_a)

        store.fetch_survey_responses(survey.pk)

        (record,) = store.survey_responses
        assert record.respondent_id == member_a.pk
        assert [(a.question_id, a.value) for a in record.answers] == [(question.pk, "ok")]
        assert ActivityLog.objects.filter(
            message=f"Respostas carregadas para a pesquisa {survey.pk}."
        ).exists()

    def test_responses_empty_is_logged(self, member_a, viewer_for, company_a):
        survey = make_survey(company_a)
        store = SurveyDataStore(viewer_for(member_a), company_a)

        store.fetch_survey_responses(survey.pk)

        assert store.survey_responses == []
        assert ActivityLog.objects.filter(
            message=f"Nenhuma resposta encontrada para a pesquisa {survey.pk}."
        ).exists()

    def test_responses_fetch_error_clears_state(self, member_a, viewer_for, company_a):
        survey = make_survey(company_a)
        store = SurveyDataStore(viewer_for(member_a), company_a)
        store.survey_responses = ["stale"]

        with mock.patch.object(SurveyResponse.objects, "filter", side_effect=DatabaseError("down")):
            store.fetch_survey_responses(survey.pk)

        assert store.survey_responses == []
        assert ActivityLog.objects.filter(level=ActivityLog.Level.ERROR).count() == 1
