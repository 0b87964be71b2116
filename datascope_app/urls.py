from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("datascope_app.api.urls")),
]

# JSON error handlers for the API-only surface
handler403 = "datascope_app.core.error_handlers.custom_permission_denied_view"
handler404 = "datascope_app.core.error_handlers.custom_page_not_found_view"
handler500 = "datascope_app.core.error_handlers.custom_server_error_view"
