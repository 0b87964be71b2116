import pytest

from datascope_app.surveys.models import Survey, SurveyTemplate

TEMPLATE_PAYLOAD = {
    "title": "Pesquisa de feira",
    "questions": [
        {"text": "Nome completo", "type": "short_text"},
        {"text": "Setor", "type": "multiple_choice", "options": ["Agro", "Indústria"]},
    ],
}


@pytest.fixture
def template(db):
    return SurveyTemplate.objects.create(
        title="Base",
        questions=[{"text": "Nome completo", "type": "short_text", "options": None}],
    )


@pytest.mark.django_db
class TestSurveyTemplateEndpoints:
    def test_list_is_open_to_authenticated_users(self, client_for, member_a, template):
        resp = client_for(member_a).get("/api/survey-templates/")
        assert resp.status_code == 200
        assert [t["title"] for t in resp.json()] == ["Base"]

    def test_developer_creates(self, client_for, developer):
        resp = client_for(developer).post("/api/survey-templates/", TEMPLATE_PAYLOAD, format="json")

        assert resp.status_code == 201, resp.content
        assert resp.json()["message"] == "Modelo criado com sucesso!"
        assert SurveyTemplate.objects.get().questions[1]["options"] == ["Agro", "Indústria"]

    def test_admin_needs_template_module(self, client_for, admin_a):
        resp = client_for(admin_a).post("/api/survey-templates/", TEMPLATE_PAYLOAD, format="json")
        assert resp.status_code == 403
        assert not SurveyTemplate.objects.exists()

    def test_module_switch_grants_access(self, client_for, admin_a):
        profile = admin_a.profile
        profile.permissions = {"manage_survey_templates": True}
        profile.save()

        resp = client_for(admin_a).post("/api/survey-templates/", TEMPLATE_PAYLOAD, format="json")
        assert resp.status_code == 201

    def test_template_without_questions(self, client_for, developer):
        resp = client_for(developer).post(
            "/api/survey-templates/", {"title": "Vazio", "questions": []}, format="json"
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == (
            "Por favor, forneça um título e garanta que todas as perguntas tenham texto."
        )

    def test_update_and_delete(self, client_for, developer, template):
        client = client_for(developer)

        resp = client.put(f"/api/survey-templates/{template.pk}/", TEMPLATE_PAYLOAD, format="json")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Modelo atualizado com sucesso!"

        resp = client.delete(f"/api/survey-templates/{template.pk}/")
        assert resp.status_code == 200
        assert resp.json() == {"message": "Modelo excluído com sucesso!", "templates": []}

    def test_unknown_template(self, client_for, developer):
        assert client_for(developer).delete("/api/survey-templates/999/").status_code == 404

    def test_create_survey_from_template(self, client_for, admin_a, company_a, template):
        resp = client_for(admin_a).post(
            f"/api/survey-templates/{template.pk}/create-survey/", {"title": "Feira 2025"}, format="json"
        )

        assert resp.status_code == 201, resp.content
        survey = Survey.objects.get()
        assert (survey.title, survey.company_id) == ("Feira 2025", company_a.pk)
        assert list(survey.questions.values_list("text", flat=True)) == ["Nome completo"]
