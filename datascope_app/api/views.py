import logging

from django.conf import settings
from django.shortcuts import get_object_or_404
from django_ratelimit.decorators import ratelimit
from rest_framework import permissions, serializers, status, viewsets
from rest_framework.decorators import (
    action,
    api_view,
    authentication_classes,
    permission_classes,
)
from rest_framework.exceptions import APIException, PermissionDenied
from rest_framework.response import Response
from rest_framework.views import APIView

from datascope_app.core.activity import log_activity
from datascope_app.core.auth import AuthError, auth_error_message, sign_in as sign_in_user
from datascope_app.core.companies import (
    CompanyAlreadyLinked,
    CompanyError,
    companies_visible_to,
    create_company_for_viewer,
    toggle_company_status,
    update_company,
)
from datascope_app.core.models import ActivityLog, Company, ModuleName, Profile, Role
from datascope_app.core.notifications import ToastCollector
from datascope_app.core.permissions import (
    has_module_permission,
    module_permissions_for,
    require_module,
)
from datascope_app.core.provisioning import (
    ProvisioningError,
    create_company_and_admin,
    create_user_for_company,
    reset_user_password,
)
from datascope_app.core.users import CompanyUserError, CompanyUserManager
from datascope_app.core.viewer import Viewer
from datascope_app.giveaways.models import GiveawayWinner, Prize
from datascope_app.giveaways.services import GiveawayError, GiveawayService
from datascope_app.notices.models import Notice
from datascope_app.notices.services import (
    NoticeError,
    create_notice,
    delete_notice,
    mark_notice_read,
    read_notice_ids,
    unread_notices,
    visible_notices,
)
from datascope_app.surveys.data import SurveyDataStore, load_survey_record
from datascope_app.surveys.models import Question, Survey, SurveyTemplate
from datascope_app.surveys.mutations import SurveyMutationService, missing_questions
from datascope_app.surveys.permissions import (
    require_can_delete,
    require_can_edit,
    require_can_view,
)
from datascope_app.surveys.records import AnswerRecord, QuestionDraft, SurveyDraft
from datascope_app.surveys.templates import SurveyTemplateService, is_complete, to_template_record

logger = logging.getLogger(__name__)


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflito."
    default_code = "conflict"


def _viewer(request) -> Viewer:
    return Viewer.from_user(request.user)


def _viewer_company(viewer: Viewer):
    if viewer is None or not viewer.company_id:
        return None
    return Company.objects.filter(pk=viewer.company_id).first()


def _payload(request) -> dict:
    data = request.data
    return data.dict() if hasattr(data, "dict") else dict(data)


def _int_param(value):
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


# -------------------- Serializers --------------------


class CompanySerializer(serializers.ModelSerializer):
    class Meta:
        model = Company
        fields = [
            "id",
            "name",
            "cnpj",
            "phone",
            "address_street",
            "address_neighborhood",
            "address_complement",
            "address_city",
            "address_state",
            "status",
            "created_at",
        ]
        read_only_fields = ["status", "created_at"]


class ProfileSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source="user_id", read_only=True)
    email = serializers.EmailField(source="user.email", read_only=True)
    company_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Profile
        fields = [
            "id",
            "email",
            "full_name",
            "role",
            "company_id",
            "status",
            "phone",
            "address",
            "permissions",
        ]
        read_only_fields = ["role", "status", "permissions"]


class QuestionWriteSerializer(serializers.Serializer):
    text = serializers.CharField()
    type = serializers.ChoiceField(choices=Question.Type.choices)
    options = serializers.ListField(
        child=serializers.CharField(), required=False, allow_null=True
    )

    def validate(self, attrs):
        choice_types = (Question.Type.MULTIPLE_CHOICE, Question.Type.CHECKBOX)
        if attrs["type"] in choice_types and not attrs.get("options"):
            raise serializers.ValidationError(
                {"options": "Perguntas de escolha precisam de pelo menos uma opção."}
            )
        return attrs


class SurveyWriteSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    questions = QuestionWriteSerializer(many=True)

    def to_draft(self) -> SurveyDraft:
        data = self.validated_data
        return SurveyDraft(
            title=data["title"],
            questions=[
                QuestionDraft(text=q["text"], type=q["type"], options=q.get("options"))
                for q in data["questions"]
            ],
        )


class AnswerWriteSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    value = serializers.JSONField(required=False, allow_null=True, default=None)


class ResponseWriteSerializer(serializers.Serializer):
    answers = AnswerWriteSerializer(many=True)


# -------------------- Surveys --------------------


class SurveyViewSet(viewsets.ViewSet):
    """Surveys of the viewer's company (all companies for developers).

    Writes run through ``SurveyMutationService``; the response carries the
    user-facing message and the refreshed survey list.
    """

    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = r"\d+"

    def _services(self, request):
        viewer = _viewer(request)
        company = _viewer_company(viewer)
        store = SurveyDataStore(viewer, company)
        notifier = ToastCollector()
        service = SurveyMutationService(viewer, company, store, notifier)
        return viewer, store, service, notifier

    def _get_survey(self, pk) -> Survey:
        return get_object_or_404(Survey.objects.select_related("company"), pk=pk)

    def list(self, request):
        viewer, store, _, _ = self._services(request)
        hint = _int_param(request.query_params.get("company"))
        records = store.fetch_surveys(hint, viewer, store.company)
        return Response([record.as_dict() for record in records])

    def retrieve(self, request, pk=None):
        viewer = _viewer(request)
        require_can_view(viewer, self._get_survey(pk))
        return Response(load_survey_record(pk).as_dict())

    def _save(self, request, survey=None):
        viewer, store, service, notifier = self._services(request)
        serializer = SurveyWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        service.handle_save_survey(serializer.to_draft(), survey.pk if survey else None)
        if notifier.last_error:
            failed_status = 500 if viewer.company_id else 400
            return Response({"error": notifier.last_error}, status=failed_status)
        return Response(
            {
                "message": notifier.last_success,
                "surveys": [record.as_dict() for record in store.surveys],
            },
            status=status.HTTP_200_OK if survey else status.HTTP_201_CREATED,
        )

    def create(self, request):
        if not has_module_permission(_viewer(request), ModuleName.CREATE_SURVEY):
            raise PermissionDenied("Você não tem permissão para criar pesquisas.")
        return self._save(request)

    def update(self, request, pk=None):
        survey = self._get_survey(pk)
        require_can_edit(_viewer(request), survey)
        return self._save(request, survey)

    def destroy(self, request, pk=None):
        viewer, store, service, notifier = self._services(request)
        survey = self._get_survey(pk)
        require_can_delete(viewer, survey)
        if not service.handle_delete_survey(survey.pk):
            return Response({"error": notifier.last_error}, status=500)
        return Response(
            {
                "message": notifier.last_success,
                "surveys": [record.as_dict() for record in store.surveys],
            }
        )

    @action(detail=True, methods=["get", "post"], url_path="responses")
    def responses(self, request, pk=None):
        viewer, store, service, notifier = self._services(request)
        survey = self._get_survey(pk)
        require_can_view(viewer, survey)

        if request.method == "GET":
            if not has_module_permission(viewer, ModuleName.VIEW_DASHBOARD):
                raise PermissionDenied("Você não tem permissão para ver as respostas.")
            store.fetch_survey_responses(survey.pk)
            return Response([record.as_dict() for record in store.survey_responses])

        serializer = ResponseWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        record = load_survey_record(survey.pk)
        question_ids = {question.id for question in record.questions}
        answers = [
            AnswerRecord(question_id=item["question_id"], value=item["value"])
            for item in serializer.validated_data["answers"]
        ]
        if any(answer.question_id not in question_ids for answer in answers):
            return Response(
                {"error": "A resposta contém perguntas que não pertencem a esta pesquisa."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        if not service.handle_save_response(answers, record, viewer):
            failed_status = 400 if missing_questions(record, answers) else 500
            return Response(
                {"error": notifier.last_error or "Não foi possível salvar a resposta."},
                status=failed_status,
            )
        return Response(
            {
                "message": notifier.last_success,
                "responses": [r.as_dict() for r in store.survey_responses],
            },
            status=status.HTTP_201_CREATED,
        )


# -------------------- Companies --------------------


class CompanyViewSet(viewsets.ViewSet):
    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = r"\d+"

    def list(self, request):
        companies = companies_visible_to(_viewer(request))
        return Response(CompanySerializer(companies, many=True).data)

    def create(self, request):
        viewer = _viewer(request)
        try:
            company = create_company_for_viewer(viewer, request.data.get("name", ""))
        except CompanyAlreadyLinked as exc:
            raise Conflict(str(exc))
        except CompanyError as exc:
            return Response({"error": str(exc)}, status=exc.status_code)
        return Response(CompanySerializer(company).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        viewer = _viewer(request)
        company = get_object_or_404(companies_visible_to(viewer), pk=pk)
        serializer = CompanySerializer(company, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        try:
            company = update_company(viewer, company, dict(serializer.validated_data))
        except CompanyError as exc:
            return Response({"error": str(exc)}, status=exc.status_code)
        return Response(
            {"message": "Empresa atualizada com sucesso!", "company": CompanySerializer(company).data}
        )

    @action(detail=True, methods=["post"], url_path="toggle-status")
    def toggle_status(self, request, pk=None):
        viewer = _viewer(request)
        company = get_object_or_404(Company, pk=pk)
        company = toggle_company_status(viewer, company)
        return Response(CompanySerializer(company).data)


# -------------------- Company users --------------------


class CompanyUserViewSet(viewsets.ViewSet):
    """Users of the viewer's company; developers pass ``?company=<id>``."""

    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = r"\d+"

    def _manager(self, request) -> CompanyUserManager:
        viewer = _viewer(request)
        company_id = _int_param(request.query_params.get("company"))
        return CompanyUserManager(viewer, company_id)

    def _run(self, func, *args):
        try:
            return func(*args), None
        except CompanyUserError as exc:
            return None, Response({"error": str(exc)}, status=exc.status_code)

    def list(self, request):
        profiles, error = self._run(self._manager(request).list_users)
        if error is not None:
            return error
        return Response(ProfileSerializer(profiles, many=True).data)

    def partial_update(self, request, pk=None):
        profile, error = self._run(self._manager(request).update_profile, pk, _payload(request))
        if error is not None:
            return error
        return Response(ProfileSerializer(profile).data)

    def destroy(self, request, pk=None):
        _, error = self._run(self._manager(request).delete_user, pk)
        if error is not None:
            return error
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="toggle-status")
    def toggle_status(self, request, pk=None):
        profile, error = self._run(self._manager(request).toggle_status, pk)
        if error is not None:
            return error
        return Response(ProfileSerializer(profile).data)

    @action(detail=True, methods=["put"], url_path="permissions")
    def permissions(self, request, pk=None):
        payload = request.data.get("permissions", request.data)
        profile, error = self._run(self._manager(request).update_permissions, pk, payload)
        if error is not None:
            return error
        return Response(ProfileSerializer(profile).data)

    @action(detail=True, methods=["post"], url_path="reset-password")
    def reset_password(self, request, pk=None):
        try:
            password, error = self._run(self._manager(request).reset_password, pk)
        except ProvisioningError as exc:
            return Response({"error": str(exc)}, status=exc.status_code)
        if error is not None:
            return error
        return Response({"temporary_password": password})


# -------------------- Activity log --------------------


class ActivityLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = ActivityLog
        fields = ["id", "level", "message", "module", "user_id", "user_email", "company_id", "created_at"]


class ActivityLogViewSet(viewsets.ViewSet):
    permission_classes = [permissions.IsAuthenticated]

    def list(self, request):
        viewer = _viewer(request)
        if viewer.is_developer:
            logs = ActivityLog.objects.all()
        elif viewer.role == Role.ADMIN and viewer.company_id:
            logs = ActivityLog.objects.filter(company_id=viewer.company_id)
        else:
            raise PermissionDenied("Você não tem permissão para ver os registros de atividade.")
        level = request.query_params.get("level")
        if level:
            logs = logs.filter(level=level.upper())
        module = request.query_params.get("module")
        if module:
            logs = logs.filter(module=module.upper())
        limit = getattr(settings, "ACTIVITY_LOG_PAGE_SIZE", 200)
        return Response(ActivityLogSerializer(logs.order_by("-created_at")[:limit], many=True).data)


# -------------------- Survey templates --------------------


class SurveyTemplateViewSet(viewsets.ViewSet):
    """Shared survey templates; writes need the ``manage_survey_templates`` module."""

    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = r"\d+"

    def _service(self, request) -> SurveyTemplateService:
        viewer = _viewer(request)
        return SurveyTemplateService(viewer, _viewer_company(viewer), ToastCollector())

    def _require_manage(self, request, message: str) -> None:
        if not has_module_permission(_viewer(request), ModuleName.MANAGE_SURVEY_TEMPLATES):
            raise PermissionDenied(message)

    def _result(self, service, ok: bool, draft=None, created: bool = False):
        if not ok:
            failed_status = 400 if draft is not None and not is_complete(draft) else 500
            return Response({"error": service.notifier.last_error}, status=failed_status)
        return Response(
            {
                "message": service.notifier.last_success,
                "templates": [record.as_dict() for record in service.templates],
            },
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def list(self, request):
        templates = self._service(request).fetch_templates()
        return Response([record.as_dict() for record in templates])

    def retrieve(self, request, pk=None):
        template = get_object_or_404(SurveyTemplate, pk=pk)
        return Response(to_template_record(template).as_dict())

    def create(self, request):
        self._require_manage(request, "Você não tem permissão para criar ou editar modelos de pesquisa.")
        serializer = SurveyWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        draft = serializer.to_draft()
        service = self._service(request)
        return self._result(service, service.handle_save_template(draft), draft, created=True)

    def update(self, request, pk=None):
        self._require_manage(request, "Você não tem permissão para criar ou editar modelos de pesquisa.")
        template = get_object_or_404(SurveyTemplate, pk=pk)
        serializer = SurveyWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        draft = serializer.to_draft()
        service = self._service(request)
        return self._result(service, service.handle_save_template(draft, template.pk), draft)

    def destroy(self, request, pk=None):
        self._require_manage(request, "Você não tem permissão para excluir modelos de pesquisa.")
        template = get_object_or_404(SurveyTemplate, pk=pk)
        service = self._service(request)
        return self._result(service, service.handle_delete_template(template.pk))

    @action(detail=True, methods=["post"], url_path="create-survey")
    def create_survey(self, request, pk=None):
        """Copy a template into a new survey of the viewer's company."""
        viewer = _viewer(request)
        if not has_module_permission(viewer, ModuleName.CREATE_SURVEY):
            raise PermissionDenied("Você não tem permissão para criar pesquisas.")
        draft = to_template_record(get_object_or_404(SurveyTemplate, pk=pk)).to_draft()
        title = (request.data.get("title") or "").strip()
        if title:
            draft.title = title
        company = _viewer_company(viewer)
        store = SurveyDataStore(viewer, company)
        notifier = ToastCollector()
        SurveyMutationService(viewer, company, store, notifier).handle_save_survey(draft)
        if notifier.last_error:
            failed_status = 500 if viewer.company_id else 400
            return Response({"error": notifier.last_error}, status=failed_status)
        return Response(
            {
                "message": notifier.last_success,
                "surveys": [record.as_dict() for record in store.surveys],
            },
            status=status.HTTP_201_CREATED,
        )


# -------------------- Notices --------------------


class NoticeSerializer(serializers.ModelSerializer):
    sender_id = serializers.IntegerField(read_only=True)
    company_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Notice
        fields = ["id", "created_at", "sender_id", "sender_email", "message", "target_roles", "company_id"]


class NoticeWriteSerializer(serializers.Serializer):
    message = serializers.CharField(allow_blank=True)
    target_roles = serializers.ListField(child=serializers.CharField(), allow_empty=True)
    company_id = serializers.IntegerField(required=False, allow_null=True)


class NoticeViewSet(viewsets.ViewSet):
    """Notices addressed to the viewer; ``?unread=1`` hides the ones already read."""

    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = r"\d+"

    def _error(self, exc: NoticeError):
        return Response({"error": str(exc)}, status=exc.status_code)

    def list(self, request):
        viewer = _viewer(request)
        unread_only = request.query_params.get("unread") in ("1", "true", "yes")
        notices = unread_notices(viewer) if unread_only else visible_notices(viewer)
        read = read_notice_ids(viewer)
        data = NoticeSerializer(notices, many=True).data
        for item in data:
            item["read"] = item["id"] in read
        return Response(data)

    def create(self, request):
        serializer = NoticeWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            notice = create_notice(
                _viewer(request), data["message"], data["target_roles"], data.get("company_id")
            )
        except NoticeError as exc:
            return self._error(exc)
        return Response(
            {"message": "Aviso enviado com sucesso!", "notice": NoticeSerializer(notice).data},
            status=status.HTTP_201_CREATED,
        )

    def destroy(self, request, pk=None):
        try:
            delete_notice(_viewer(request), pk)
        except NoticeError as exc:
            return self._error(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="read")
    def read(self, request, pk=None):
        try:
            notice = mark_notice_read(_viewer(request), pk)
        except NoticeError as exc:
            return self._error(exc)
        data = NoticeSerializer(notice).data
        data["read"] = True
        return Response(data)


# -------------------- Giveaways --------------------


class PrizeSerializer(serializers.ModelSerializer):
    company_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Prize
        fields = ["id", "company_id", "name", "description", "rank", "created_at"]


class PrizeWriteSerializer(serializers.Serializer):
    name = serializers.CharField(allow_blank=True)
    description = serializers.CharField(allow_blank=True, required=False, default="")
    rank = serializers.IntegerField(min_value=1, required=False, allow_null=True, default=None)


class GiveawayWinnerSerializer(serializers.ModelSerializer):
    prize_id = serializers.IntegerField(read_only=True)
    prize_name = serializers.CharField(source="prize.name", read_only=True, default=None)
    winner_response_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = GiveawayWinner
        fields = [
            "id",
            "rank",
            "prize_id",
            "prize_name",
            "winner_response_id",
            "winner_name",
            "winner_email",
            "winner_phone",
            "created_at",
        ]


def _giveaway_service(viewer: Viewer, company) -> GiveawayService:
    return GiveawayService(viewer, company, ToastCollector())


class PrizeViewSet(viewsets.ViewSet):
    """Prizes of the viewer's company; developers pass ``?company=<id>``."""

    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = r"\d+"

    def _company(self, viewer: Viewer):
        if viewer.is_developer:
            company_id = _int_param(self.request.query_params.get("company"))
            if company_id:
                return get_object_or_404(Company, pk=company_id)
        return _viewer_company(viewer)

    def _get_prize(self, viewer: Viewer, pk) -> Prize:
        prizes = Prize.objects.select_related("company")
        if not viewer.is_developer:
            prizes = prizes.filter(company_id=viewer.company_id)
        return get_object_or_404(prizes, pk=pk)

    def _save(self, request, service: GiveawayService, prize=None):
        if not has_module_permission(service.viewer, ModuleName.PERFORM_GIVEAWAYS):
            raise PermissionDenied("Você não tem permissão para gerenciar prêmios.")
        serializer = PrizeWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        saved = service.handle_save_prize(data["name"], data["description"], data["rank"], prize)
        if saved is None:
            failed_status = 400 if not data["name"].strip() else 500
            return Response({"error": service.notifier.last_error}, status=failed_status)
        return Response(
            {"message": service.notifier.last_success, "prize": PrizeSerializer(saved).data},
            status=status.HTTP_200_OK if prize else status.HTTP_201_CREATED,
        )

    def list(self, request):
        viewer = _viewer(request)
        require_module(viewer, ModuleName.ACCESS_GIVEAWAYS)
        service = _giveaway_service(viewer, self._company(viewer))
        return Response(PrizeSerializer(service.list_prizes(), many=True).data)

    def create(self, request):
        viewer = _viewer(request)
        company = self._company(viewer)
        if company is None:
            return Response(
                {"error": "Você precisa estar vinculado a uma empresa para cadastrar prêmios."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return self._save(request, _giveaway_service(viewer, company))

    def update(self, request, pk=None):
        viewer = _viewer(request)
        prize = self._get_prize(viewer, pk)
        return self._save(request, _giveaway_service(viewer, prize.company), prize)

    def destroy(self, request, pk=None):
        viewer = _viewer(request)
        prize = self._get_prize(viewer, pk)
        if not has_module_permission(viewer, ModuleName.PERFORM_GIVEAWAYS):
            raise PermissionDenied("Você não tem permissão para excluir prêmios.")
        service = _giveaway_service(viewer, prize.company)
        if not service.handle_delete_prize(prize):
            return Response({"error": service.notifier.last_error}, status=500)
        return Response({"message": service.notifier.last_success})


class GiveawayViewSet(viewsets.ViewSet):
    """Draws for one survey, addressed by the survey id."""

    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = r"\d+"

    def _context(self, request, pk, module: str):
        viewer = _viewer(request)
        survey = get_object_or_404(Survey.objects.select_related("company"), pk=pk)
        require_can_view(viewer, survey)
        require_module(viewer, module)
        return viewer, survey, _giveaway_service(viewer, survey.company)

    @action(detail=True, methods=["get"], url_path="participants")
    def participants(self, request, pk=None):
        _, survey, service = self._context(request, pk, ModuleName.ACCESS_GIVEAWAYS)
        try:
            people = service.load_participants(survey)
        except GiveawayError as exc:
            return Response({"error": str(exc)}, status=exc.status_code)
        return Response([participant.as_dict() for participant in people])

    @action(detail=True, methods=["post"], url_path="draw")
    def draw(self, request, pk=None):
        _, survey, service = self._context(request, pk, ModuleName.PERFORM_GIVEAWAYS)
        prize_ids = request.data.get("prize_ids") or []
        if not isinstance(prize_ids, list):
            return Response(
                {"error": "Informe a lista de prêmios do sorteio."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            winners = service.draw_winners(survey, prize_ids)
        except GiveawayError as exc:
            return Response({"error": str(exc)}, status=exc.status_code)
        return Response(
            {
                "message": service.notifier.last_success,
                "winners": GiveawayWinnerSerializer(winners, many=True).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["get"], url_path="winners")
    def winners(self, request, pk=None):
        _, survey, service = self._context(request, pk, ModuleName.VIEW_GIVEAWAY_DATA)
        return Response(GiveawayWinnerSerializer(service.past_winners(survey), many=True).data)


# -------------------- Current user --------------------


@api_view(["GET", "PATCH"])
@permission_classes([permissions.IsAuthenticated])
def me(request):
    profile, _ = Profile.objects.select_related("user").get_or_create(user=request.user)
    if request.method == "PATCH":
        serializer = ProfileSerializer(profile, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        viewer = _viewer(request)
        log_activity(
            ActivityLog.Level.INFO,
            "Perfil atualizado",
            "USERS",
            viewer.id,
            viewer.email,
            viewer.company_id,
        )
        profile.refresh_from_db()
    viewer = _viewer(request)
    data = ProfileSerializer(profile).data
    data["module_permissions"] = module_permissions_for(viewer)
    company = _viewer_company(viewer)
    data["company"] = CompanySerializer(company).data if company else None
    return Response(data)


# -------------------- Auth --------------------

_SIGN_IN_STATUS = {
    AuthError.MISSING_CREDENTIALS: status.HTTP_400_BAD_REQUEST,
    AuthError.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    AuthError.INACTIVE_ACCOUNT: status.HTTP_403_FORBIDDEN,
}


@api_view(["POST"])
@authentication_classes([])
@permission_classes([permissions.AllowAny])
@ratelimit(key="ip", rate="10/m", block=True)
def sign_in(request):
    result = sign_in_user(request, request.data.get("email", ""), request.data.get("password", ""))
    if not result.ok:
        return Response(
            {"error": auth_error_message(result.error), "code": result.error.value},
            status=_SIGN_IN_STATUS[result.error],
        )
    session = result.session
    return Response(
        {
            "access": session.access,
            "refresh": session.refresh,
            "user_id": session.user_id,
            "email": session.email,
        }
    )


# -------------------- Privileged functions --------------------


def _user_payload(user) -> dict:
    profile = Profile.objects.filter(user_id=user.pk).first()
    return {
        "id": user.pk,
        "email": user.email,
        "full_name": getattr(profile, "full_name", ""),
        "role": getattr(profile, "role", None),
        "company_id": getattr(profile, "company_id", None),
    }


class PrivilegedFunctionView(APIView):
    """Base for account provisioning endpoints.

    Every failure is answered as ``{"error": message}`` with the matching
    status code, including unexpected ones (500).
    """

    permission_classes = [permissions.IsAuthenticated]

    def handle_exception(self, exc):
        if isinstance(exc, ProvisioningError):
            return Response({"error": str(exc)}, status=exc.status_code)
        if isinstance(exc, APIException):
            response = super().handle_exception(exc)
            detail = response.data.get("detail") if isinstance(response.data, dict) else None
            response.data = {"error": str(detail or response.data)}
            return response
        logger.exception("Unhandled error in %s", type(self).__name__)
        return Response(
            {"error": f"Erro interno do servidor: {exc}"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


class CreateCompanyAndAdminView(PrivilegedFunctionView):
    def post(self, request):
        data = request.data
        company, user = create_company_and_admin(
            _viewer(request),
            data.get("companyName", ""),
            data.get("adminFullName", ""),
            data.get("adminEmail", ""),
            data.get("adminPassword", ""),
        )
        return Response(
            {
                "message": "Empresa e administrador criados com sucesso!",
                "company": CompanySerializer(company).data,
                "adminUser": _user_payload(user),
            },
            status=status.HTTP_201_CREATED,
        )


class CreateUserView(PrivilegedFunctionView):
    def post(self, request):
        data = request.data
        user = create_user_for_company(
            _viewer(request),
            data.get("email"),
            data.get("password"),
            data.get("fullName"),
            data.get("role"),
            data.get("companyId"),
        )
        return Response({"user": _user_payload(user)})


class ResetUserPasswordView(PrivilegedFunctionView):
    def post(self, request):
        user = reset_user_password(
            _viewer(request), request.data.get("userId"), request.data.get("newPassword")
        )
        return Response({"user": _user_payload(user)})


@api_view(["GET"])
@authentication_classes([])
@permission_classes([permissions.AllowAny])
def healthcheck(request):
    return Response({"status": "ok"})
