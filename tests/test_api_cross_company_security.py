"""
Test JWT-based API security: verify users cannot read or change surveys and
users belonging to other companies.
"""

from django.contrib.auth import get_user_model
import pytest

from datascope_app.core.activity import log_activity
from datascope_app.core.models import ActivityLog
from datascope_app.surveys.models import Question, Survey

User = get_user_model()


@pytest.fixture
def survey_b(company_b, admin_b):
    survey = Survey.objects.create(title="Pesquisa B", company=company_b, created_by=admin_b)
    Question.objects.create(survey=survey, text="Q", type=Question.Type.SHORT_TEXT, position=0)
    return survey


@pytest.mark.django_db
class TestCrossCompanySecurity:
    def test_user_cannot_list_other_company_surveys(self, client, jwt_header, admin_a, company_a, survey_b):
        own = Survey.objects.create(title="Pesquisa A", company=company_a, created_by=admin_a)

        resp = client.get("/api/surveys/", **jwt_header(admin_a.email))

        assert resp.status_code == 200
        ids = {s["id"] for s in resp.json()}
        assert own.pk in ids
        assert survey_b.pk not in ids

    def test_company_hint_cannot_widen_scope(self, client, jwt_header, admin_a, company_b, survey_b):
        resp = client.get(f"/api/surveys/?company={company_b.pk}", **jwt_header(admin_a.email))
        assert resp.status_code == 200
        assert resp.json() == []

    def test_user_cannot_read_other_company_responses(self, client, jwt_header, admin_a, survey_b):
        resp = client.get(f"/api/surveys/{survey_b.pk}/responses/", **jwt_header(admin_a.email))
        assert resp.status_code == 403

    def test_user_cannot_delete_other_company_survey(self, client, jwt_header, admin_a, survey_b):
        resp = client.delete(f"/api/surveys/{survey_b.pk}/", **jwt_header(admin_a.email))
        assert resp.status_code == 403
        assert Survey.objects.filter(pk=survey_b.pk).exists()

    def test_admin_cannot_touch_other_company_users(self, client, jwt_header, admin_a, admin_b):
        headers = jwt_header(admin_a.email)
        resp = client.post(f"/api/company-users/{admin_b.pk}/reset-password/", **headers)
        assert resp.status_code == 404
        resp = client.delete(f"/api/company-users/{admin_b.pk}/", **headers)
        assert resp.status_code == 404
        assert User.objects.filter(pk=admin_b.pk).exists()

    def test_admin_cannot_read_other_company_activity(self, client, jwt_header, admin_a, admin_b, company_b):
        log_activity(ActivityLog.Level.INFO, "Evento da B", "USERS", admin_b.pk, admin_b.email, company_b.pk)
        resp = client.get("/api/activity-logs/", **jwt_header(admin_a.email))
        assert resp.status_code == 200
        assert all(entry["company_id"] != company_b.pk for entry in resp.json())
        assert ActivityLog.objects.filter(company_id=company_b.pk).exists()

    def test_developer_sees_every_company(self, client, jwt_header, developer, company_a, survey_b):
        Survey.objects.create(title="Pesquisa A", company=company_a)
        resp = client.get("/api/surveys/", **jwt_header(developer.email))
        assert len(resp.json()) == 2
