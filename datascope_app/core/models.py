from __future__ import annotations

import uuid

from django.contrib.auth import get_user_model
from django.db import models

User = get_user_model()


class Status(models.TextChoices):
    ACTIVE = "active", "Ativo"
    INACTIVE = "inactive", "Inativo"


class Role(models.TextChoices):
    DEVELOPER = "developer", "Desenvolvedor"
    ADMIN = "admin", "Administrador"
    USER = "user", "Usuário"


class ModuleName(models.TextChoices):
    CREATE_SURVEY = "create_survey", "Criar pesquisa"
    MANAGE_SURVEYS = "manage_surveys", "Gerenciar pesquisas"
    VIEW_DASHBOARD = "view_dashboard", "Ver painel"
    ACCESS_GIVEAWAYS = "access_giveaways", "Acessar sorteios"
    PERFORM_GIVEAWAYS = "perform_giveaways", "Realizar sorteios"
    VIEW_GIVEAWAY_DATA = "view_giveaway_data", "Ver dados de sorteios"
    MANAGE_COMPANY_SETTINGS = "manage_company_settings", "Configurações da empresa"
    MANAGE_USERS = "manage_users", "Gerenciar usuários"
    MANAGE_COMPANIES = "manage_companies", "Gerenciar empresas"
    MANAGE_NOTICES = "manage_notices", "Gerenciar avisos"
    ACCESS_CHAT = "access_chat", "Acessar chat"
    MANAGE_SURVEY_TEMPLATES = "manage_survey_templates", "Gerenciar modelos"


class Company(models.Model):
    name = models.CharField(max_length=255)
    cnpj = models.CharField(max_length=32, blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    address_street = models.CharField(max_length=255, blank=True, default="")
    address_neighborhood = models.CharField(max_length=255, blank=True, default="")
    address_complement = models.CharField(max_length=255, blank=True, default="")
    address_city = models.CharField(max_length=255, blank=True, default="")
    address_state = models.CharField(max_length=64, blank=True, default="")
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "companies"

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class Profile(models.Model):
    """Application-level identity attached to every auth user.

    Created automatically when the auth user is saved for the first time, see
    ``datascope_app.core.signals``. ``permissions`` holds per-user module
    overrides on top of the role defaults.
    """

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="profile")
    full_name = models.CharField(max_length=255, blank=True, default="")
    role = models.CharField(max_length=16, choices=Role.choices, default=Role.USER)
    company = models.ForeignKey(
        Company,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="profiles",
    )
    permissions = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE)
    phone = models.CharField(max_length=32, blank=True, default="")
    address = models.CharField(max_length=512, blank=True, default="")

    class Meta:
        indexes = [models.Index(fields=["company", "role"], name="core_profil_company_7d1f0a_idx")]

    def __str__(self) -> str:  # pragma: no cover
        return self.full_name or self.user.get_username()


class ModulePermission(models.Model):
    """Role-wide module switch, overriding the built-in defaults."""

    role = models.CharField(max_length=16, choices=Role.choices)
    module_name = models.CharField(max_length=64, choices=ModuleName.choices)
    enabled = models.BooleanField(default=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["role", "module_name"], name="unique_role_module"
            )
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.role}:{self.module_name}={self.enabled}"


class ActivityLog(models.Model):
    class Level(models.TextChoices):
        DEBUG = "DEBUG", "Debug"
        INFO = "INFO", "Info"
        WARN = "WARN", "Warn"
        ERROR = "ERROR", "Error"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    level = models.CharField(max_length=8, choices=Level.choices)
    message = models.TextField()
    module = models.CharField(max_length=64)
    user = models.ForeignKey(
        User,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="activity_logs",
        db_constraint=False,
    )
    user_email = models.CharField(max_length=254, blank=True, default="")
    company = models.ForeignKey(
        Company,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="activity_logs",
        db_constraint=False,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["company", "created_at"], name="core_activi_company_4b2e91_idx"),
            models.Index(fields=["level"], name="core_activi_level_0c6a5d_idx"),
        ]
