"""Shared pytest fixtures: companies, users with profiles and API clients."""

import json

from django.contrib.auth import get_user_model
from django.core.cache import cache
import pytest
from rest_framework.test import APIClient

from datascope_app.core.models import Company, Role, Status
from datascope_app.core.viewer import Viewer

User = get_user_model()
TEST_PASSWORD = "test-pass-123"


@pytest.fixture(autouse=True)
def clear_cache_between_tests():
    """Throttle, rate-limit and chat history state lives in the cache."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    def _make(
        email,
        role=Role.USER,
        company=None,
        full_name="",
        password=TEST_PASSWORD,
        status=Status.ACTIVE,
        permissions=None,
    ):
        user = User.objects.create_user(username=email, email=email, password=password)
        profile = user.profile
        profile.role = role
        profile.company = company
        profile.full_name = full_name
        profile.status = status
        profile.permissions = permissions or {}
        profile.save()
        return user

    return _make


@pytest.fixture
def company_a(db):
    return Company.objects.create(name="Empresa A")


@pytest.fixture
def company_b(db):
    return Company.objects.create(name="Empresa B")


@pytest.fixture
def developer(make_user):
    return make_user("dev@example.com", role=Role.DEVELOPER, full_name="Dev Silva")


@pytest.fixture
def admin_a(make_user, company_a):
    return make_user("admin@a.example.com", role=Role.ADMIN, company=company_a, full_name="Ana Admin")


@pytest.fixture
def member_a(make_user, company_a):
    return make_user("user@a.example.com", company=company_a, full_name="Bruno Usuário")


@pytest.fixture
def admin_b(make_user, company_b):
    return make_user("admin@b.example.com", role=Role.ADMIN, company=company_b, full_name="Carla Admin")


@pytest.fixture
def viewer_for():
    def _viewer(user):
        return Viewer.from_user(User.objects.get(pk=user.pk))

    return _viewer


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    """APIClient authenticated as ``user`` without going through JWT."""

    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _client


@pytest.fixture
def jwt_header(client):
    """Obtain a JWT access token through /api/token and build the header."""

    def _header(email: str, password: str = TEST_PASSWORD) -> dict:
        resp = client.post(
            "/api/token",
            data=json.dumps({"username": email, "password": password}),
            content_type="application/json",
        )
        assert resp.status_code == 200, resp.content
        return {"HTTP_AUTHORIZATION": f"Bearer {resp.json()['access']}"}

    return _header
