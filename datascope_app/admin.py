from django.conf import settings
from django.contrib.admin import AdminSite
from django.contrib.admin.apps import AdminConfig


class DataScopeAdminSite(AdminSite):
    site_header = f"{getattr(settings, 'BRAND_TITLE', 'DataScope')} Admin"
    site_title = f"{getattr(settings, 'BRAND_TITLE', 'DataScope')} Admin"
    index_title = "Administração"

    def has_permission(self, request):  # type: ignore[override]
        # Restrict access strictly to active superusers
        return bool(
            request.user and request.user.is_active and request.user.is_superuser
        )


class DataScopeAdminConfig(AdminConfig):
    default_site = "datascope_app.admin.DataScopeAdminSite"
