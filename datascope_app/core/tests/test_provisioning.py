"""
Tests for privileged account provisioning, including compensation of
half-finished work when a later step fails.
"""

from unittest import mock

from django.contrib.auth import get_user_model
from django.db import DatabaseError
import pytest

from datascope_app.core.models import Company, Profile, Role
from datascope_app.core.provisioning import (
    EmailAlreadyRegistered,
    InvalidProvisioningRequest,
    ProvisioningError,
    ProvisioningForbidden,
    UserNotFound,
    create_company_and_admin,
    create_user_for_company,
    generate_temporary_password,
    parse_role,
    reset_user_password,
)

User = get_user_model()


class TestHelpers:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("admin", Role.ADMIN),
            ("Administrador", Role.ADMIN),
            ("usuário", Role.USER),
            ("developer", Role.DEVELOPER),
            ("root", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parse_role(self, value, expected):
        assert parse_role(value) == expected

    def test_temporary_password_mixes_letters_and_digits(self):
        for _ in range(20):
            password = generate_temporary_password()
            assert len(password) == 12
            assert any(c.isalpha() for c in password)
            assert any(c.isdigit() for c in password)


@pytest.mark.django_db
class TestCreateCompanyAndAdmin:
    def test_developer_creates_company_with_admin(self, viewer_for, developer):
        company, user = create_company_and_admin(
            viewer_for(developer), "Nova Empresa", "Maria Souza", "maria@nova.com", "s3nha-forte"
        )

        assert user.check_password("s3nha-forte")
        profile = Profile.objects.get(user=user)
        assert (profile.company_id, profile.role, profile.full_name) == (
            company.pk,
            Role.ADMIN,
            "Maria Souza",
        )

    def test_non_developer_is_forbidden(self, viewer_for, admin_a):
        with pytest.raises(ProvisioningForbidden):
            create_company_and_admin(viewer_for(admin_a), "X", "Y", "y@x.com", "pw")
        assert not User.objects.filter(email="y@x.com").exists()

    def test_missing_fields(self, viewer_for, developer):
        with pytest.raises(InvalidProvisioningRequest):
            create_company_and_admin(viewer_for(developer), "X", "", "y@x.com", "pw")

    def test_duplicate_email_conflicts(self, viewer_for, developer, member_a):
        with pytest.raises(EmailAlreadyRegistered) as excinfo:
            create_company_and_admin(viewer_for(developer), "X", "Y", member_a.email, "pw")
        assert excinfo.value.status_code == 409
        assert str(excinfo.value) == "Já existe um usuário com este e-mail."

    def test_company_failure_deletes_user(self, viewer_for, developer):
        viewer = viewer_for(developer)
        with mock.patch.object(Company.objects, "create", side_effect=DatabaseError("boom")):
            with pytest.raises(ProvisioningError) as excinfo:
                create_company_and_admin(viewer, "X", "Y", "y@x.com", "pw")
        assert excinfo.value.status_code == 500
        assert not User.objects.filter(email="y@x.com").exists()

    def test_profile_failure_deletes_user_and_company(self, viewer_for, developer):
        viewer = viewer_for(developer)
        with mock.patch.object(Profile.objects, "update_or_create", side_effect=DatabaseError("boom")):
            with pytest.raises(ProvisioningError):
                create_company_and_admin(viewer, "Sem Admin", "Y", "y@x.com", "pw")
        assert not User.objects.filter(email="y@x.com").exists()
        assert not Company.objects.filter(name="Sem Admin").exists()


@pytest.mark.django_db
class TestCreateUserForCompany:
    def test_admin_creates_user_in_own_company(self, viewer_for, admin_a, company_a):
        user = create_user_for_company(
            viewer_for(admin_a), "novo@a.com", "pw-123", "Novo Usuário", "user", company_a.pk
        )
        profile = Profile.objects.get(user=user)
        assert (profile.company_id, profile.role, profile.full_name) == (
            company_a.pk,
            Role.USER,
            "Novo Usuário",
        )

    def test_accepts_role_label_and_string_company_id(self, viewer_for, developer, company_a):
        user = create_user_for_company(
            viewer_for(developer), "adm@a.com", "pw", "Adm", "Administrador", str(company_a.pk)
        )
        assert Profile.objects.get(user=user).role == Role.ADMIN

    @pytest.mark.parametrize("blank", ["email", "password", "full_name", "role", "company_id"])
    def test_blank_fields_are_rejected(self, viewer_for, developer, company_a, blank):
        values = {
            "email": "x@a.com",
            "password": "pw",
            "full_name": "X",
            "role": "user",
            "company_id": company_a.pk,
        }
        values[blank] = "  "
        with pytest.raises(InvalidProvisioningRequest) as excinfo:
            create_user_for_company(viewer_for(developer), **values)
        assert "companyId são obrigatórios" in str(excinfo.value)

    def test_admin_cannot_create_in_other_company(self, viewer_for, admin_a, company_b):
        with pytest.raises(ProvisioningForbidden):
            create_user_for_company(viewer_for(admin_a), "x@b.com", "pw", "X", "user", company_b.pk)

    def test_admin_cannot_create_developer(self, viewer_for, admin_a, company_a):
        with pytest.raises(ProvisioningForbidden):
            create_user_for_company(viewer_for(admin_a), "x@a.com", "pw", "X", "developer", company_a.pk)

    def test_member_cannot_create_users(self, viewer_for, member_a, company_a):
        with pytest.raises(ProvisioningForbidden):
            create_user_for_company(viewer_for(member_a), "x@a.com", "pw", "X", "user", company_a.pk)

    def test_unknown_company_and_role(self, viewer_for, developer, company_a):
        with pytest.raises(InvalidProvisioningRequest):
            create_user_for_company(viewer_for(developer), "x@a.com", "pw", "X", "user", 999999)
        with pytest.raises(InvalidProvisioningRequest):
            create_user_for_company(viewer_for(developer), "x@a.com", "pw", "X", "chefe", company_a.pk)

    def test_duplicate_email(self, viewer_for, developer, member_a, company_a):
        with pytest.raises(EmailAlreadyRegistered):
            create_user_for_company(viewer_for(developer), member_a.email, "pw", "X", "user", company_a.pk)

    def test_profile_failure_deletes_user(self, viewer_for, developer, company_a):
        viewer = viewer_for(developer)
        with mock.patch.object(Profile.objects, "update_or_create", side_effect=DatabaseError("boom")):
            with pytest.raises(ProvisioningError):
                create_user_for_company(viewer, "x@a.com", "pw", "X", "user", company_a.pk)
        assert not User.objects.filter(email="x@a.com").exists()


@pytest.mark.django_db
class TestResetUserPassword:
    def test_admin_resets_member(self, viewer_for, admin_a, member_a):
        reset_user_password(viewer_for(admin_a), member_a.pk, "nova-senha-1")
        member_a.refresh_from_db()
        assert member_a.check_password("nova-senha-1")

    def test_missing_parameters(self, viewer_for, admin_a, member_a):
        with pytest.raises(InvalidProvisioningRequest) as excinfo:
            reset_user_password(viewer_for(admin_a), member_a.pk, "")
        assert str(excinfo.value) == "Parâmetros ausentes: userId e newPassword são obrigatórios."

    def test_unknown_user(self, viewer_for, developer):
        with pytest.raises(UserNotFound):
            reset_user_password(viewer_for(developer), 999999, "pw")

    def test_admin_of_other_company_is_forbidden(self, viewer_for, admin_b, member_a):
        with pytest.raises(ProvisioningForbidden):
            reset_user_password(viewer_for(admin_b), member_a.pk, "pw")

    def test_admin_cannot_reset_developer(self, viewer_for, admin_a, make_user, company_a):
        dev_in_company = make_user("dev@a.com", role=Role.DEVELOPER, company=company_a)
        with pytest.raises(ProvisioningForbidden):
            reset_user_password(viewer_for(admin_a), dev_in_company.pk, "pw")
