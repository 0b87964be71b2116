"""
Giveaways: prizes per company and prize draws among survey respondents.

A participant is a survey response that answered the survey's name question.
The name question is the first short-text question whose text mentions
"nome"; e-mail and phone are picked up the same way from e-mail and phone
questions ("e-mail"/"email", "telefone"/"celular"). Responses that already
won a placing in the same survey are left out of later draws.

Module switches:

- ``access_giveaways`` to see prizes and participants
- ``perform_giveaways`` to manage prizes and run draws
- ``view_giveaway_data`` to read the winners history
"""

from __future__ import annotations

import logging
import random
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Optional

from django.core.exceptions import PermissionDenied
from django.db import DatabaseError

from datascope_app.core.activity import log_activity
from datascope_app.core.models import ActivityLog, ModuleName
from datascope_app.core.notifications import Notifier
from datascope_app.core.permissions import has_module_permission
from datascope_app.core.viewer import Viewer
from datascope_app.surveys.models import Question, Survey, SurveyResponse

from .models import GiveawayWinner, Prize

logger = logging.getLogger(__name__)

MODULE = "GIVEAWAYS"

NO_NAME_QUESTION = (
    'A pesquisa selecionada não possui uma pergunta de nome '
    '(ex: "Nome Completo" do tipo Texto Curto).'
)


class GiveawayError(Exception):
    status_code = 400


class GiveawayStorageError(GiveawayError):
    status_code = 500


@dataclass(frozen=True)
class Participant:
    response_id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def _first_question(questions, question_type: str, keywords: Iterable[str]) -> Optional[int]:
    for question in questions:
        text = (question.text or "").lower()
        if question.type == question_type and any(word in text for word in keywords):
            return question.pk
    return None


def contact_question_ids(questions) -> tuple[Optional[int], Optional[int], Optional[int]]:
    """Ids of the (name, e-mail, phone) questions, None where missing."""
    questions = list(questions)
    return (
        _first_question(questions, Question.Type.SHORT_TEXT, ("nome completo", "nome")),
        _first_question(questions, Question.Type.EMAIL, ("e-mail", "email")),
        _first_question(questions, Question.Type.PHONE, ("telefone", "celular")),
    )


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value).strip()
    return str(value).strip()


class GiveawayService:
    def __init__(self, viewer: Optional[Viewer], company, notifier: Notifier, rng=None):
        self.viewer = viewer
        self.company = company
        self.notifier = notifier
        self.rng = rng or random.SystemRandom()

    @property
    def company_id(self) -> Optional[int]:
        return getattr(self.company, "pk", None)

    def _log(self, level: str, message: str) -> None:
        log_activity(
            level,
            message,
            MODULE,
            getattr(self.viewer, "id", None),
            getattr(self.viewer, "email", None),
            self.company_id,
        )

    def _allowed(self, module: str) -> bool:
        return has_module_permission(self.viewer, module)

    # -------------------- Prizes --------------------

    def list_prizes(self) -> list[Prize]:
        if self.company_id is None:
            return []
        return list(Prize.objects.filter(company_id=self.company_id))

    def handle_save_prize(
        self,
        name: str,
        description: str = "",
        rank: Optional[int] = None,
        editing_prize: Optional[Prize] = None,
    ) -> Optional[Prize]:
        if not self._allowed(ModuleName.PERFORM_GIVEAWAYS):
            self.notifier.error("Você não tem permissão para gerenciar prêmios.")
            return None
        name = (name or "").strip()
        if not name:
            self.notifier.error("O nome do prêmio não pode estar vazio.")
            self._log(
                ActivityLog.Level.WARN,
                f"Tentativa de salvar prêmio sem nome na empresa {self.company_id}.",
            )
            return None

        try:
            if editing_prize is not None:
                editing_prize.name = name
                editing_prize.description = description or ""
                editing_prize.rank = rank
                editing_prize.save(update_fields=["name", "description", "rank"])
                prize = editing_prize
                self.notifier.success("Prêmio atualizado com sucesso!")
                self._log(
                    ActivityLog.Level.INFO,
                    f"Prêmio '{name}' (ID: {prize.pk}) atualizado com sucesso.",
                )
            else:
                prize = Prize.objects.create(
                    company_id=self.company_id,
                    name=name,
                    description=description or "",
                    rank=rank,
                )
                self.notifier.success("Prêmio criado com sucesso!")
                self._log(
                    ActivityLog.Level.INFO,
                    f"Novo prêmio '{name}' criado com sucesso para a empresa {self.company_id}.",
                )
        except DatabaseError as exc:
            logger.error("Error saving prize %r: %s", name, exc)
            self.notifier.error(f"Erro ao salvar prêmio: {exc}")
            self._log(
                ActivityLog.Level.ERROR,
                f"Erro ao salvar prêmio '{name}' na empresa {self.company_id}: {exc}",
            )
            return None
        return prize

    def handle_delete_prize(self, prize: Prize) -> bool:
        if not self._allowed(ModuleName.PERFORM_GIVEAWAYS):
            self.notifier.error("Você não tem permissão para excluir prêmios.")
            return False
        prize_id, name = prize.pk, prize.name
        try:
            prize.delete()
        except DatabaseError as exc:
            logger.error("Error deleting prize %s: %s", prize_id, exc)
            self.notifier.error(f"Erro ao excluir prêmio: {exc}")
            self._log(
                ActivityLog.Level.ERROR,
                f"Erro ao excluir prêmio '{name}' (ID: {prize_id}): {exc}",
            )
            return False
        self.notifier.success("Prêmio excluído com sucesso!")
        self._log(ActivityLog.Level.INFO, f"Prêmio '{name}' (ID: {prize_id}) excluído com sucesso.")
        return True

    # -------------------- Participants and draws --------------------

    def load_participants(self, survey: Survey) -> list[Participant]:
        """Respondents of a survey that gave a name, oldest response first.

        Raises ``GiveawayError`` when the survey has no name question or the
        responses cannot be read.
        """
        try:
            name_id, email_id, phone_id = contact_question_ids(survey.questions.all())
            if name_id is None:
                self._log(
                    ActivityLog.Level.WARN,
                    f"Sorteio: {NO_NAME_QUESTION} para surveyId: {survey.pk}",
                )
                raise GiveawayError(NO_NAME_QUESTION)

            responses = (
                SurveyResponse.objects.filter(survey=survey)
                .prefetch_related("answers")
                .order_by("created_at", "id")
            )
            participants = []
            for response in responses:
                values = {answer.question_id: answer.value for answer in response.answers.all()}
                name = _as_text(values.get(name_id))
                if not name:
                    continue
                participants.append(
                    Participant(
                        response_id=response.pk,
                        name=name,
                        email=(_as_text(values.get(email_id)) or None) if email_id else None,
                        phone=(_as_text(values.get(phone_id)) or None) if phone_id else None,
                    )
                )
        except DatabaseError as exc:
            message = f"Não foi possível carregar os participantes: {exc}"
            self._log(ActivityLog.Level.ERROR, f"Sorteio: {message} para surveyId: {survey.pk}")
            raise GiveawayStorageError(message) from exc
        return participants

    def draw_winners(self, survey: Survey, prize_ids: Iterable[int]) -> list[GiveawayWinner]:
        """Draw one distinct winner per selected prize, best placing first.

        Winners already recorded are kept if a later insert fails; the error
        is raised as ``GiveawayStorageError``.
        """
        if not self._allowed(ModuleName.PERFORM_GIVEAWAYS):
            raise PermissionDenied("Você não tem permissão para realizar sorteios.")

        prizes = list(Prize.objects.filter(company_id=survey.company_id, pk__in=list(prize_ids)))
        if not prizes:
            raise GiveawayError("Selecione pelo menos um prêmio para o sorteio.")

        participants = self.load_participants(survey)

        already_won = set(
            GiveawayWinner.objects.filter(survey=survey).values_list("winner_response_id", flat=True)
        )
        eligible = [p for p in participants if p.response_id not in already_won]
        if len(eligible) < len(prizes):
            self._log(
                ActivityLog.Level.WARN,
                f"Sorteio da pesquisa '{survey.title}' cancelado: {len(eligible)} participante(s) "
                f"para {len(prizes)} prêmio(s).",
            )
            raise GiveawayError(
                "Não há participantes suficientes para todos os prêmios selecionados."
            )

        picks = self.rng.sample(eligible, len(prizes))
        winners = []
        try:
            for placing, (prize, participant) in enumerate(zip(prizes, picks), start=1):
                winners.append(
                    GiveawayWinner.objects.create(
                        survey=survey,
                        prize=prize,
                        winner_response_id=participant.response_id,
                        winner_name=participant.name,
                        winner_email=participant.email or "",
                        winner_phone=participant.phone or "",
                        rank=placing,
                        drawn_by_id=getattr(self.viewer, "id", None),
                    )
                )
        except DatabaseError as exc:
            logger.error("Error recording giveaway winners for survey %s: %s", survey.pk, exc)
            self._log(
                ActivityLog.Level.ERROR,
                f"Erro ao registrar ganhadores da pesquisa '{survey.title}': {exc}",
            )
            raise GiveawayStorageError(f"Erro ao registrar os ganhadores: {exc}") from exc

        self.notifier.success("Sorteio realizado com sucesso!")
        self._log(
            ActivityLog.Level.INFO,
            f"Sorteio da pesquisa '{survey.title}' realizado: "
            + "; ".join(f"{w.rank}º {w.winner_name}" for w in winners),
        )
        return winners

    def past_winners(self, survey: Survey) -> list[GiveawayWinner]:
        if not self._allowed(ModuleName.VIEW_GIVEAWAY_DATA):
            return []
        try:
            return list(
                GiveawayWinner.objects.filter(survey=survey)
                .select_related("prize")
                .order_by("-created_at", "rank")
            )
        except DatabaseError as exc:
            logger.error("Error loading giveaway winners for survey %s: %s", survey.pk, exc)
            self.notifier.error("Não foi possível carregar o histórico de sorteios.")
            return []
