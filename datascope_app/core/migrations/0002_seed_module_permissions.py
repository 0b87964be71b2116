from django.db import migrations

ADMIN_MODULES = ("manage_users", "access_chat")


def seed_admin_modules(apps, schema_editor):
    ModulePermission = apps.get_model("core", "ModulePermission")
    for module_name in ADMIN_MODULES:
        ModulePermission.objects.get_or_create(
            role="admin", module_name=module_name, defaults={"enabled": True}
        )


def unseed_admin_modules(apps, schema_editor):
    ModulePermission = apps.get_model("core", "ModulePermission")
    ModulePermission.objects.filter(role="admin", module_name__in=ADMIN_MODULES).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("core", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_admin_modules, unseed_admin_modules),
    ]
