"""
Chat assistant transport.

One ``ChatTransport`` talks to one of the supported language model providers
(Gemini, Perplexity, Deepseek). Providers differ only in how the request body
is shaped, how the reply is read back and how the key is sent; everything else
(history, errors, timeouts) is shared.

Conversation history is kept per session in the Django cache, capped at
``CHAT_HISTORY_MAX_MESSAGES`` messages and expiring after ``CHAT_HISTORY_TTL``
seconds of inactivity. ``clear`` drops a session explicitly.

## Adding a provider

1. Write a request builder and a reply parser
2. Add a ``ChatProvider`` entry to PROVIDERS
3. Add the API key setting to settings.py
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from django.conf import settings
from django.core.cache import cache
import requests

logger = logging.getLogger(__name__)

USER = "user"
ASSISTANT = "assistant"

SYSTEM_PROMPT = """Você é um assistente especializado em Expomarau 2025, mas também pode responder sobre outros assuntos gerais. Sua especialidade principal é a Expomarau 2025, que é uma feira de exposições e eventos que acontece na cidade de MARAU, no estado do RIO GRANDE DO SUL, Brasil.

INSTRUÇÕES IMPORTANTES:
1. Para perguntas sobre Expomarau, seja detalhado e específico
2. Para outros assuntos, responda de forma útil e informativa
3. SEMPRE mencione que a Expomarau acontece em Marau/RS quando perguntado sobre localização
4. Responda de forma natural, sem incluir links ou referências externas
5. Se não tiver certeza sobre uma informação específica, seja honesto e oriente a consultar fontes oficiais, como o site da Prefeitura de Marau (pmmarau.com.br)

Responda sempre em português brasileiro de forma clara, objetiva, natural e PRECISA."""

GENERIC_ERROR = "Não foi possível processar sua mensagem. Tente novamente."


class ChatError(Exception):
    """Raised when a chat message cannot be answered."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class ChatProvider:
    key: str
    display_name: str
    url: str
    api_key_setting: str
    build_body: Callable[[list[dict[str, str]]], dict[str, Any]]
    parse_reply: Callable[[dict[str, Any]], Optional[str]]
    # Gemini takes the key as a query parameter, the others as a bearer token
    key_in_query: bool = False

    @property
    def api_key(self) -> str:
        return getattr(settings, self.api_key_setting, "") or ""

    def is_configured(self) -> bool:
        return bool(self.api_key)


def _gemini_body(history: list[dict[str, str]]) -> dict[str, Any]:
    return {
        "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
        "contents": [
            {
                "role": "model" if message["role"] == ASSISTANT else "user",
                "parts": [{"text": message["content"]}],
            }
            for message in history
        ],
        "generationConfig": {
            "temperature": 0.7,
            "topK": 40,
            "topP": 0.95,
            "maxOutputTokens": 1024,
        },
    }


def _gemini_reply(data: dict[str, Any]) -> Optional[str]:
    candidates = data.get("candidates") or []
    if not candidates:
        return None
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return parts[0].get("text") if parts else None


def _openai_style_body(model: str) -> Callable[[list[dict[str, str]]], dict[str, Any]]:
    def build(history: list[dict[str, str]]) -> dict[str, Any]:
        return {
            "model": model,
            "messages": [{"role": "system", "content": SYSTEM_PROMPT}]
            + [{"role": m["role"], "content": m["content"]} for m in history],
            "temperature": 0.7,
            "max_tokens": 1024,
            "top_p": 0.95,
            "stream": False,
        }

    return build


def _openai_style_reply(data: dict[str, Any]) -> Optional[str]:
    choices = data.get("choices") or []
    if not choices:
        return None
    return (choices[0].get("message") or {}).get("content")


PROVIDERS = {
    "gemini": ChatProvider(
        key="gemini",
        display_name="Gemini",
        url="https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent",
        api_key_setting="GEMINI_API_KEY",
        build_body=_gemini_body,
        parse_reply=_gemini_reply,
        key_in_query=True,
    ),
    "perplexity": ChatProvider(
        key="perplexity",
        display_name="Perplexity",
        url="https://api.perplexity.ai/chat/completions",
        api_key_setting="PERPLEXITY_API_KEY",
        build_body=_openai_style_body("llama-3.1-sonar-small-128k-online"),
        parse_reply=_openai_style_reply,
    ),
    "deepseek": ChatProvider(
        key="deepseek",
        display_name="Deepseek",
        url="https://api.deepseek.com/v1/chat/completions",
        api_key_setting="DEEPSEEK_API_KEY",
        build_body=_openai_style_body("deepseek-chat"),
        parse_reply=_openai_style_reply,
    ),
}


def get_provider(key: str) -> ChatProvider:
    try:
        return PROVIDERS[key]
    except KeyError:
        raise ChatError(f"Provedor de chat desconhecido: {key}", status_code=404) from None


def _status_error(provider: ChatProvider, response: requests.Response) -> ChatError:
    status = response.status_code
    if status == 400:
        return ChatError("Erro na requisição: Verifique se a chave da API está correta.")
    if status in (401, 403):
        return ChatError("Acesso negado: Chave da API inválida ou sem permissões.")
    if status == 429:
        return ChatError(
            "Limite de requisições excedido. Tente novamente em alguns minutos.", status_code=429
        )
    if status >= 500:
        return ChatError(
            f"Erro interno do servidor {provider.display_name}. Tente novamente mais tarde."
        )
    return ChatError(f"Erro na API do {provider.display_name}: {status} {response.reason}")


class ChatHistoryStore:
    """Per-session message history kept in the Django cache."""

    def __init__(self, namespace: str):
        self.namespace = namespace

    @property
    def max_messages(self) -> int:
        return int(getattr(settings, "CHAT_HISTORY_MAX_MESSAGES", 40))

    @property
    def ttl(self) -> int:
        return int(getattr(settings, "CHAT_HISTORY_TTL", 60 * 60 * 6))

    def _cache_key(self, session_id: str) -> str:
        return f"chat_history:{self.namespace}:{session_id}"

    def get(self, session_id: str) -> list[dict[str, str]]:
        return list(cache.get(self._cache_key(session_id)) or [])

    def append(self, session_id: str, *messages: dict[str, str]) -> list[dict[str, str]]:
        history = self.get(session_id) + list(messages)
        history = history[-self.max_messages :]
        cache.set(self._cache_key(session_id), history, self.ttl)
        return history

    def clear(self, session_id: str) -> None:
        cache.delete(self._cache_key(session_id))


class ChatTransport:
    def __init__(self, provider: ChatProvider, owner: Any = "anonymous"):
        self.provider = provider
        self.history = ChatHistoryStore(f"{provider.key}:{owner}")

    @property
    def timeout(self) -> int:
        return int(getattr(settings, "CHAT_REQUEST_TIMEOUT", 30))

    def send_message(self, text: str, session_id: str = "default") -> str:
        """Send ``text`` with the session history and return the assistant reply.

        Raises:
            ChatError: If the provider is not configured, unreachable, or
                returns an error or an empty reply
        """
        text = (text or "").strip()
        if not text:
            raise ChatError("A mensagem não pode estar vazia.", status_code=400)
        if not self.provider.is_configured():
            raise ChatError(
                f"API do {self.provider.display_name} não configurada. "
                f"Verifique se a chave {self.provider.api_key_setting} está definida.",
                status_code=503,
            )

        user_message = {"role": USER, "content": text}
        body = self.provider.build_body(self.history.get(session_id) + [user_message])
        headers = {"Content-Type": "application/json"}
        params = None
        if self.provider.key_in_query:
            params = {"key": self.provider.api_key}
        else:
            headers["Authorization"] = f"Bearer {self.provider.api_key}"

        try:
            response = requests.post(
                self.provider.url,
                json=body,
                headers=headers,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Chat request to {self.provider.key} failed: {e}")
            raise ChatError(GENERIC_ERROR) from e

        if not response.ok:
            logger.error(
                f"Chat provider {self.provider.key} returned {response.status_code}: {response.text[:500]}"
            )
            raise _status_error(self.provider, response)

        try:
            reply = self.provider.parse_reply(response.json())
        except (KeyError, ValueError, TypeError, AttributeError, IndexError) as e:
            logger.error(f"Failed to parse reply from {self.provider.key}: {e}")
            raise ChatError(GENERIC_ERROR) from e
        if not reply:
            raise ChatError(f"Nenhuma resposta foi gerada pelo {self.provider.display_name}.")

        self.history.append(session_id, user_message, {"role": ASSISTANT, "content": reply})
        return reply

    def get_history(self, session_id: str = "default") -> list[dict[str, str]]:
        return self.history.get(session_id)

    def clear(self, session_id: str = "default") -> None:
        self.history.clear(session_id)
