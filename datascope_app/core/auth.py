"""
E-mail/password sign-in returning an explicit result.

``sign_in`` never raises for expected failures: it returns a
``SignInResult`` carrying either the issued JWT pair or an ``AuthError``.
``auth_error_message`` maps the error to the text shown to the user.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from django.contrib.auth import authenticate, get_user_model
from rest_framework_simplejwt.tokens import RefreshToken

from .activity import log_activity
from .models import ActivityLog, Status

User = get_user_model()


class AuthError(enum.Enum):
    MISSING_CREDENTIALS = "missing_credentials"
    INVALID_CREDENTIALS = "invalid_credentials"
    INACTIVE_ACCOUNT = "inactive_account"


_MESSAGES = {
    AuthError.MISSING_CREDENTIALS: "Informe e-mail e senha para entrar.",
    AuthError.INVALID_CREDENTIALS: "E-mail ou senha inválidos.",
    AuthError.INACTIVE_ACCOUNT: "Sua conta está inativa. Entre em contato com o administrador.",
}


def auth_error_message(error: AuthError) -> str:
    return _MESSAGES[error]


@dataclass(frozen=True)
class Session:
    user_id: int
    email: str
    access: str
    refresh: str


@dataclass(frozen=True)
class SignInResult:
    session: Optional[Session] = None
    error: Optional[AuthError] = None

    @property
    def ok(self) -> bool:
        return self.session is not None


def _find_username(email: str) -> str:
    user = User.objects.filter(email__iexact=email).only("username").first()
    return user.get_username() if user else email


def sign_in(request, email: str, password: str) -> SignInResult:
    email = (email or "").strip()
    if not email or not password:
        return SignInResult(error=AuthError.MISSING_CREDENTIALS)

    user = authenticate(request, username=_find_username(email), password=password)
    if user is None:
        # inactive auth users are rejected by ModelBackend as well
        inactive = User.objects.filter(email__iexact=email, is_active=False).exists()
        error = AuthError.INACTIVE_ACCOUNT if inactive else AuthError.INVALID_CREDENTIALS
        log_activity(ActivityLog.Level.WARN, f"Falha de login para {email}", "AUTH", user_email=email)
        return SignInResult(error=error)

    profile = getattr(user, "profile", None)
    if profile is not None and profile.status == Status.INACTIVE:
        log_activity(ActivityLog.Level.WARN, "Login bloqueado: conta inativa", "AUTH", user.pk, user.email)
        return SignInResult(error=AuthError.INACTIVE_ACCOUNT)

    refresh = RefreshToken.for_user(user)
    log_activity(
        ActivityLog.Level.INFO,
        "Login realizado com sucesso",
        "AUTH",
        user.pk,
        user.email,
        getattr(profile, "company_id", None),
    )
    return SignInResult(
        session=Session(
            user_id=user.pk,
            email=user.email,
            access=str(refresh.access_token),
            refresh=str(refresh),
        )
    )
