import logging

from rest_framework import permissions
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response
from rest_framework.views import APIView

from datascope_app.core.activity import log_activity
from datascope_app.core.models import ActivityLog, ModuleName
from datascope_app.core.permissions import has_module_permission
from datascope_app.core.viewer import Viewer

from .transport import ChatError, ChatTransport, get_provider

logger = logging.getLogger(__name__)


class ChatView(APIView):
    """Assistant chat for one provider.

    POST sends ``{"message", "session_id"}`` and returns the reply, GET returns
    the session history and DELETE clears it. History is private to the
    authenticated user.
    """

    permission_classes = [permissions.IsAuthenticated]

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        self.viewer = Viewer.from_user(request.user)
        if not has_module_permission(self.viewer, ModuleName.ACCESS_CHAT):
            raise PermissionDenied("Você não tem permissão para acessar o chat.")

    def _transport(self, provider: str) -> ChatTransport:
        return ChatTransport(get_provider(provider), owner=self.viewer.id)

    def _session_id(self, request) -> str:
        value = request.data.get("session_id") if request.method == "POST" else None
        return str(value or request.query_params.get("session_id") or "default")

    def handle_exception(self, exc):
        if isinstance(exc, ChatError):
            return Response({"error": str(exc)}, status=exc.status_code)
        return super().handle_exception(exc)

    def post(self, request, provider):
        transport = self._transport(provider)
        session_id = self._session_id(request)
        try:
            reply = transport.send_message(request.data.get("message", ""), session_id)
        except ChatError as exc:
            if exc.status_code >= 500:
                log_activity(
                    ActivityLog.Level.ERROR,
                    f"Falha no chat ({provider}): {exc}",
                    "CHAT",
                    self.viewer.id,
                    self.viewer.email,
                    self.viewer.company_id,
                )
            raise
        return Response(
            {
                "reply": reply,
                "provider": transport.provider.key,
                "session_id": session_id,
                "history": transport.get_history(session_id),
            }
        )

    def get(self, request, provider):
        transport = self._transport(provider)
        session_id = self._session_id(request)
        return Response(
            {
                "provider": transport.provider.key,
                "session_id": session_id,
                "history": transport.get_history(session_id),
            }
        )

    def delete(self, request, provider):
        self._transport(provider).clear(self._session_id(request))
        return Response(status=204)
