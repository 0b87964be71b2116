from django.core.exceptions import PermissionDenied
import pytest

from datascope_app.core.models import ActivityLog, Role
from datascope_app.notices.models import Notice, UserNotice
from datascope_app.notices.services import (
    NoticeError,
    NoticeNotFound,
    create_notice,
    delete_notice,
    mark_notice_read,
    unread_notices,
    visible_notices,
)


@pytest.mark.django_db
class TestCreateNotice:
    def test_admin_notice_goes_to_own_company_users(self, viewer_for, admin_a, company_a, company_b):
        notice = create_notice(viewer_for(admin_a), "  Feira amanhã às 9h ", [Role.USER], company_b.pk)

        assert notice.message == "Feira amanhã às 9h"
        assert notice.company_id == company_a.pk
        assert notice.target_roles == [Role.USER]
        assert notice.sender_email == admin_a.email
        assert ActivityLog.objects.filter(module="NOTICES", company_id=company_a.pk).exists()

    def test_admin_cannot_target_admins(self, viewer_for, admin_a):
        with pytest.raises(PermissionDenied):
            create_notice(viewer_for(admin_a), "Oi", [Role.USER, Role.ADMIN])

    def test_requires_manage_notices_module(self, viewer_for, member_a):
        with pytest.raises(PermissionDenied):
            create_notice(viewer_for(member_a), "Oi", [Role.USER])

    def test_developer_broadcast(self, viewer_for, developer):
        notice = create_notice(viewer_for(developer), "Manutenção", [Role.ADMIN, Role.USER])
        assert notice.company_id is None

    @pytest.mark.parametrize(
        "message, roles",
        [("   ", [Role.USER]), ("Oi", []), ("Oi", ["gerente"])],
    )
    def test_invalid_input(self, viewer_for, developer, message, roles):
        with pytest.raises(NoticeError):
            create_notice(viewer_for(developer), message, roles)
        assert not Notice.objects.exists()


@pytest.mark.django_db
class TestNoticeVisibility:
    @pytest.fixture
    def notices(self, developer, company_a, company_b):
        return {
            "users_a": Notice.objects.create(message="A", target_roles=[Role.USER], company=company_a),
            "admins_a": Notice.objects.create(message="AA", target_roles=[Role.ADMIN], company=company_a),
            "users_b": Notice.objects.create(message="B", target_roles=[Role.USER], company=company_b),
            "broadcast": Notice.objects.create(message="Todos", target_roles=[Role.USER, Role.ADMIN]),
        }

    def test_user_sees_own_company_and_broadcasts(self, viewer_for, member_a, notices):
        seen = {n.message for n in visible_notices(viewer_for(member_a))}
        assert seen == {"A", "Todos"}

    def test_admin_sees_admin_notices(self, viewer_for, admin_a, notices):
        seen = {n.message for n in visible_notices(viewer_for(admin_a))}
        assert seen == {"AA", "Todos"}

    def test_developer_only_sees_notices_addressed_to_developers(self, viewer_for, developer, notices):
        assert visible_notices(viewer_for(developer)) == []
        Notice.objects.create(message="Devs", target_roles=[Role.DEVELOPER], company=notices["users_b"].company)
        assert [n.message for n in visible_notices(viewer_for(developer))] == ["Devs"]

    def test_mark_read_hides_from_unread(self, viewer_for, member_a, notices):
        viewer = viewer_for(member_a)

        mark_notice_read(viewer, notices["users_a"].pk)
        mark_notice_read(viewer, notices["users_a"].pk)

        assert UserNotice.objects.filter(user=member_a).count() == 1
        assert [n.message for n in unread_notices(viewer)] == ["Todos"]
        assert len(visible_notices(viewer)) == 2

    def test_cannot_mark_foreign_notice(self, viewer_for, member_a, notices):
        with pytest.raises(NoticeNotFound):
            mark_notice_read(viewer_for(member_a), notices["users_b"].pk)


@pytest.mark.django_db
class TestDeleteNotice:
    def test_sender_deletes(self, viewer_for, admin_a):
        viewer = viewer_for(admin_a)
        notice = create_notice(viewer, "Oi", [Role.USER])

        delete_notice(viewer, notice.pk)

        assert not Notice.objects.exists()

    def test_other_admin_cannot_delete(self, viewer_for, admin_a, admin_b):
        notice = create_notice(viewer_for(admin_a), "Oi", [Role.USER])

        with pytest.raises(PermissionDenied):
            delete_notice(viewer_for(admin_b), notice.pk)
        assert Notice.objects.filter(pk=notice.pk).exists()
