"""JSON error responses outside the DRF views."""

from django.test import RequestFactory
import pytest

from datascope_app.core.error_handlers import (
    custom_page_not_found_view,
    custom_permission_denied_view,
    custom_server_error_view,
)


@pytest.mark.django_db
def test_unknown_url_returns_json_404(client):
    resp = client.get("/nada-aqui")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Recurso não encontrado."}


def test_handlers_return_json():
    request = RequestFactory().get("/")
    assert custom_permission_denied_view(request).status_code == 403
    assert custom_server_error_view(request).status_code == 500
    resp = custom_page_not_found_view(request)
    assert resp.status_code == 404
    assert resp["Content-Type"] == "application/json"
