from __future__ import annotations

from typing import Dict, List, Optional, Protocol

import httpx
import openai
from openai import AsyncOpenAI

from aidoc.config import Settings


class ModelClientError(Exception):
    """Base class for failures talking to the chat-completion endpoint."""


class AuthMissingError(ModelClientError):
    def __init__(self) -> None:
        super().__init__("missing OPENAI_API_KEY")


class TransportError(ModelClientError):
    pass


class UpstreamError(ModelClientError):
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"LLM responded with error: {status_code} {body[:500]}")
        self.status_code = status_code
        self.body = body


class ChatModel(Protocol):
    async def complete(self, messages: List[Dict[str, str]]) -> str: ...


class ModelClient:
    """
    Thin wrapper over the OpenAI chat-completions API.

    Requests are deterministic (temperature 0) and ask for a JSON object.
    The SDK's own retries are disabled; the pipeline's repair pass is the
    only retry.
    """

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> None:
        self._settings = settings
        self._http_client = http_client
        self._client: Optional[AsyncOpenAI] = None

    def _client_lazy(self) -> AsyncOpenAI:
        if not self._settings.openai_api_key:
            raise AuthMissingError()
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._settings.openai_api_key,
                base_url=self._settings.openai_base_url,
                timeout=self._settings.openai_timeout,
                max_retries=0,
                http_client=self._http_client,
            )
        return self._client

    async def complete(self, messages: List[Dict[str, str]]) -> str:
        client = self._client_lazy()
        try:
            resp = await client.chat.completions.create(
                model=self._settings.openai_model,
                messages=messages,
                temperature=0,
                response_format={"type": "json_object"},
            )
        except openai.APIStatusError as e:
            raise UpstreamError(e.status_code, e.response.text) from e
        except openai.APIError as e:
            # connection failures, timeouts, undecodable responses
            raise TransportError(f"{type(e).__name__}: {e}") from e

        if not resp.choices:
            return ""
        return resp.choices[0].message.content or ""
