import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Company",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                ("cnpj", models.CharField(blank=True, default="", max_length=32)),
                ("phone", models.CharField(blank=True, default="", max_length=32)),
                ("address_street", models.CharField(blank=True, default="", max_length=255)),
                ("address_neighborhood", models.CharField(blank=True, default="", max_length=255)),
                ("address_complement", models.CharField(blank=True, default="", max_length=255)),
                ("address_city", models.CharField(blank=True, default="", max_length=255)),
                ("address_state", models.CharField(blank=True, default="", max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Ativo"), ("inactive", "Inativo")],
                        default="active",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["name"],
                "verbose_name_plural": "companies",
            },
        ),
        migrations.CreateModel(
            name="ModulePermission",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("developer", "Desenvolvedor"),
                            ("admin", "Administrador"),
                            ("user", "Usuário"),
                        ],
                        max_length=16,
                    ),
                ),
                (
                    "module_name",
                    models.CharField(
                        choices=[
                            ("create_survey", "Criar pesquisa"),
                            ("manage_surveys", "Gerenciar pesquisas"),
                            ("view_dashboard", "Ver painel"),
                            ("access_giveaways", "Acessar sorteios"),
                            ("perform_giveaways", "Realizar sorteios"),
                            ("view_giveaway_data", "Ver dados de sorteios"),
                            ("manage_company_settings", "Configurações da empresa"),
                            ("manage_users", "Gerenciar usuários"),
                            ("manage_companies", "Gerenciar empresas"),
                            ("manage_notices", "Gerenciar avisos"),
                            ("access_chat", "Acessar chat"),
                            ("manage_survey_templates", "Gerenciar modelos"),
                        ],
                        max_length=64,
                    ),
                ),
                ("enabled", models.BooleanField(default=True)),
            ],
        ),
        migrations.AddConstraint(
            model_name="modulepermission",
            constraint=models.UniqueConstraint(
                fields=("role", "module_name"), name="unique_role_module"
            ),
        ),
        migrations.CreateModel(
            name="Profile",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("full_name", models.CharField(blank=True, default="", max_length=255)),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("developer", "Desenvolvedor"),
                            ("admin", "Administrador"),
                            ("user", "Usuário"),
                        ],
                        default="user",
                        max_length=16,
                    ),
                ),
                ("permissions", models.JSONField(blank=True, default=dict)),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Ativo"), ("inactive", "Inativo")],
                        default="active",
                        max_length=16,
                    ),
                ),
                ("phone", models.CharField(blank=True, default="", max_length=32)),
                ("address", models.CharField(blank=True, default="", max_length=512)),
                (
                    "company",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="profiles",
                        to="core.company",
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
        ),
        migrations.AddIndex(
            model_name="profile",
            index=models.Index(
                fields=["company", "role"], name="core_profil_company_7d1f0a_idx"
            ),
        ),
        migrations.CreateModel(
            name="ActivityLog",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "level",
                    models.CharField(
                        choices=[
                            ("DEBUG", "Debug"),
                            ("INFO", "Info"),
                            ("WARN", "Warn"),
                            ("ERROR", "Error"),
                        ],
                        max_length=8,
                    ),
                ),
                ("message", models.TextField()),
                ("module", models.CharField(max_length=64)),
                ("user_email", models.CharField(blank=True, default="", max_length=254)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "company",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="activity_logs",
                        to="core.company",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="activity_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.AddIndex(
            model_name="activitylog",
            index=models.Index(
                fields=["company", "created_at"], name="core_activi_company_4b2e91_idx"
            ),
        ),
        migrations.AddIndex(
            model_name="activitylog",
            index=models.Index(fields=["level"], name="core_activi_level_0c6a5d_idx"),
        ),
    ]
