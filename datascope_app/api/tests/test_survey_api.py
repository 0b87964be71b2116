"""
Tests for the survey endpoints: listing scope, create/update/delete permission
checks, response submission and the messages returned to the client.
"""

from unittest import mock

from django.db import DatabaseError
import pytest

from datascope_app.core.models import ModuleName, ModulePermission, Role
from datascope_app.surveys.models import Answer, Question, Survey, SurveyResponse

SURVEY_PAYLOAD = {
    "title": "Satisfação",
    "questions": [
        {"text": "Nota", "type": "rating"},
        {"text": "Cor favorita", "type": "multiple_choice", "options": ["Azul", "Verde"]},
    ],
}


@pytest.fixture
def survey_a(company_a, admin_a):
    survey = Survey.objects.create(title="Feira", company=company_a, created_by=admin_a)
    Question.objects.create(survey=survey, text="Gostou?", type=Question.Type.SHORT_TEXT, position=0)
    return survey


@pytest.mark.django_db
class TestSurveyList:
    def test_requires_authentication(self, api_client):
        assert api_client.get("/api/surveys/").status_code == 401

    def test_lists_company_surveys(self, client_for, member_a, survey_a, company_b):
        Survey.objects.create(title="Outra", company=company_b)

        resp = client_for(member_a).get("/api/surveys/")

        assert resp.status_code == 200
        (item,) = resp.json()
        assert item["id"] == survey_a.pk
        assert item["company_name"] == "Empresa A"
        assert item["created_by_name"] == "Ana Admin"
        assert item["response_count"] == 0
        assert [q["text"] for q in item["questions"]] == ["Gostou?"]

    def test_user_without_company_gets_empty_list(self, client_for, make_user, survey_a):
        resp = client_for(make_user("solo@example.com")).get("/api/surveys/")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_developer_lists_everything(self, client_for, developer, survey_a, company_b):
        Survey.objects.create(title="Outra", company=company_b)
        resp = client_for(developer).get("/api/surveys/")
        assert len(resp.json()) == 2

    def test_retrieve(self, client_for, member_a, admin_b, survey_a):
        assert client_for(member_a).get(f"/api/surveys/{survey_a.pk}/").json()["title"] == "Feira"
        assert client_for(admin_b).get(f"/api/surveys/{survey_a.pk}/").status_code == 403
        assert client_for(member_a).get("/api/surveys/999999/").status_code == 404


@pytest.mark.django_db
class TestSurveyCreate:
    def test_create(self, client_for, admin_a, company_a):
        resp = client_for(admin_a).post("/api/surveys/", SURVEY_PAYLOAD, format="json")

        assert resp.status_code == 201, resp.content
        assert resp.json()["message"] == "Pesquisa criada com sucesso!"
        survey = Survey.objects.get()
        assert survey.company_id == company_a.pk
        assert list(survey.questions.values_list("position", flat=True)) == [0, 1]
        assert len(resp.json()["surveys"]) == 1

    def test_choice_question_needs_options(self, client_for, admin_a):
        payload = {"title": "X", "questions": [{"text": "Q", "type": "checkbox"}]}
        resp = client_for(admin_a).post("/api/surveys/", payload, format="json")
        assert resp.status_code == 400
        assert not Survey.objects.exists()

    def test_invalid_question_type(self, client_for, admin_a):
        payload = {"title": "X", "questions": [{"text": "Q", "type": "slider"}]}
        assert client_for(admin_a).post("/api/surveys/", payload, format="json").status_code == 400

    def test_user_without_company(self, client_for, make_user):
        resp = client_for(make_user("solo@example.com")).post("/api/surveys/", SURVEY_PAYLOAD, format="json")
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("Você precisa estar vinculado a uma empresa")

    def test_create_survey_module_disabled(self, client_for, member_a):
        ModulePermission.objects.create(role=Role.USER, module_name=ModuleName.CREATE_SURVEY, enabled=False)
        resp = client_for(member_a).post("/api/surveys/", SURVEY_PAYLOAD, format="json")
        assert resp.status_code == 403

    def test_database_failure_is_reported(self, client_for, admin_a):
        with mock.patch.object(Question.objects, "bulk_create", side_effect=DatabaseError("boom")):
            resp = client_for(admin_a).post("/api/surveys/", SURVEY_PAYLOAD, format="json")
        assert resp.status_code == 500
        assert resp.json()["error"] == "Erro ao salvar a pesquisa: boom"


@pytest.mark.django_db
class TestSurveyUpdateDelete:
    def test_update_replaces_questions(self, client_for, admin_a, survey_a):
        resp = client_for(admin_a).put(f"/api/surveys/{survey_a.pk}/", SURVEY_PAYLOAD, format="json")

        assert resp.status_code == 200, resp.content
        assert resp.json()["message"] == "Pesquisa atualizada com sucesso!"
        survey_a.refresh_from_db()
        assert survey_a.title == "Satisfação"
        assert list(survey_a.questions.values_list("text", flat=True)) == ["Nota", "Cor favorita"]

    def test_other_company_cannot_update(self, client_for, admin_b, survey_a):
        resp = client_for(admin_b).put(f"/api/surveys/{survey_a.pk}/", SURVEY_PAYLOAD, format="json")
        assert resp.status_code == 403
        survey_a.refresh_from_db()
        assert survey_a.title == "Feira"

    def test_developer_cannot_edit_other_company_survey(self, client_for, developer, survey_a):
        resp = client_for(developer).put(f"/api/surveys/{survey_a.pk}/", SURVEY_PAYLOAD, format="json")
        assert resp.status_code == 403

    def test_delete(self, client_for, admin_a, survey_a):
        resp = client_for(admin_a).delete(f"/api/surveys/{survey_a.pk}/")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Pesquisa excluída com sucesso!"
        assert not Survey.objects.exists()

    def test_developer_can_delete_any(self, client_for, developer, survey_a):
        assert client_for(developer).delete(f"/api/surveys/{survey_a.pk}/").status_code == 200

    def test_other_company_cannot_delete(self, client_for, admin_b, survey_a):
        assert client_for(admin_b).delete(f"/api/surveys/{survey_a.pk}/").status_code == 403
        assert Survey.objects.filter(pk=survey_a.pk).exists()


@pytest.mark.django_db
class TestSurveyResponses:
    def answers_payload(self, survey, value="Sim"):
        return {"answers": [{"question_id": q.pk, "value": value} for q in survey.questions.all()]}

    def test_submit_and_list(self, client_for, member_a, admin_a, survey_a):
        resp = client_for(member_a).post(
            f"/api/surveys/{survey_a.pk}/responses/", self.answers_payload(survey_a), format="json"
        )
        assert resp.status_code == 201, resp.content
        assert resp.json()["message"] == "Resposta enviada com sucesso!"
        assert SurveyResponse.objects.get().respondent_id == member_a.pk

        listing = client_for(admin_a).get(f"/api/surveys/{survey_a.pk}/responses/")
        assert listing.status_code == 200
        (response,) = listing.json()
        assert response["answers"][0]["value"] == "Sim"

        surveys = client_for(admin_a).get("/api/surveys/").json()
        assert surveys[0]["response_count"] == 1

    def test_missing_answer(self, client_for, member_a, survey_a):
        resp = client_for(member_a).post(
            f"/api/surveys/{survey_a.pk}/responses/", self.answers_payload(survey_a, "  "), format="json"
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Por favor, responda a todas as perguntas obrigatórias: Gostou?"
        assert not SurveyResponse.objects.exists()

    def test_answer_without_value_is_a_missing_answer(self, client_for, member_a, survey_a):
        question = survey_a.questions.get()
        resp = client_for(member_a).post(
            f"/api/surveys/{survey_a.pk}/responses/",
            {"answers": [{"question_id": question.pk}]},
            format="json",
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Por favor, responda a todas as perguntas obrigatórias: Gostou?"
        assert not SurveyResponse.objects.exists()

    def test_foreign_question_is_rejected(self, client_for, member_a, survey_a, company_b):
        other = Survey.objects.create(title="Outra", company=company_b)
        foreign = Question.objects.create(survey=other, text="?", type="short_text", position=0)
        payload = self.answers_payload(survey_a)
        payload["answers"].append({"question_id": foreign.pk, "value": "x"})

        resp = client_for(member_a).post(f"/api/surveys/{survey_a.pk}/responses/", payload, format="json")

        assert resp.status_code == 400
        assert not SurveyResponse.objects.exists()

    def test_other_company_cannot_respond(self, client_for, admin_b, survey_a):
        resp = client_for(admin_b).post(
            f"/api/surveys/{survey_a.pk}/responses/", self.answers_payload(survey_a), format="json"
        )
        assert resp.status_code == 403

    def test_answer_failure_reports_error(self, client_for, member_a, survey_a):
        with mock.patch.object(Answer.objects, "bulk_create", side_effect=DatabaseError("boom")):
            resp = client_for(member_a).post(
                f"/api/surveys/{survey_a.pk}/responses/", self.answers_payload(survey_a), format="json"
            )
        assert resp.status_code == 500
        assert resp.json()["error"] == "Erro ao salvar as respostas detalhadas: boom"

    def test_dashboard_module_required_to_list(self, client_for, member_a, survey_a):
        profile = member_a.profile
        profile.permissions = {"view_dashboard": False}
        profile.save()
        assert client_for(member_a).get(f"/api/surveys/{survey_a.pk}/responses/").status_code == 403
