"""JSON error handlers for Django-level errors outside DRF views."""

from django.http import HttpRequest, JsonResponse


def custom_permission_denied_view(request: HttpRequest, exception=None) -> JsonResponse:
    """Custom 403 error handler."""
    return JsonResponse({"error": "Acesso negado."}, status=403)


def custom_page_not_found_view(request: HttpRequest, exception=None) -> JsonResponse:
    """Custom 404 error handler."""
    return JsonResponse({"error": "Recurso não encontrado."}, status=404)


def custom_server_error_view(request: HttpRequest) -> JsonResponse:
    """Custom 500 error handler."""
    return JsonResponse({"error": "Erro interno do servidor."}, status=500)
