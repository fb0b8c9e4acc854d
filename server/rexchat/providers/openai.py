from __future__ import annotations
import os
import logging
from typing import List, Optional
import httpx

from rexchat.config import Settings, get_settings
from rexchat.core.errors import ModelError
from rexchat.schemas.chat import CompletionRequest, CompletionResponse

logger = logging.getLogger(__name__)


class OpenAIProvider:
    id = "openai"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._transport = transport

    @property
    def api_key(self) -> Optional[str]:
        return self.settings.openai_api_key or os.getenv("OPENAI_API_KEY")

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        api_key = self.api_key
        if not api_key:
            # Graceful fallback: canned reply so the app works without a key
            return self._mock_complete(request)

        payload = {
            "model": request.model,
            "messages": [m.model_dump() for m in request.messages],
        }
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        url = self.settings.openai_base_url.rstrip("/") + "/chat/completions"

        # Single attempt: the caller decides what a failure means
        read_timeout = self.settings.model_timeout_seconds
        timeout = httpx.Timeout(connect=10.0, read=read_timeout, write=30.0, pool=10.0)
        try:
            async with httpx.AsyncClient(timeout=timeout, trust_env=True, transport=self._transport) as client:
                resp = await client.post(url, headers=headers, json=payload)
                resp.raise_for_status()
                obj = resp.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 429:
                friendly = "[OpenAI] Too many requests. You have hit the rate limit. Please wait a moment and try again."
            elif status in (401, 403):
                friendly = "[OpenAI] Authentication/permission issue. Check your API key and model access."
            elif status == 400:
                friendly = "[OpenAI] Bad request. Please verify the model id and payload parameters."
            else:
                friendly = f"[openai] request failed with status {status}: {e.response.text}"
            raise ModelError(friendly, status=status) from e
        except httpx.HTTPError as e:
            raise ModelError(f"[openai] request failed: {e!s}") from e
        except ValueError as e:
            raise ModelError("[openai] response was not valid JSON") from e

        choices: List[str] = []
        for choice in obj.get("choices") or []:
            content = (choice.get("message") or {}).get("content")
            if isinstance(content, str):
                choices.append(content)
        logger.debug("openai model=%s choices=%d", obj.get("model", request.model), len(choices))
        return CompletionResponse(choices=choices)

    def _mock_complete(self, request: CompletionRequest) -> CompletionResponse:
        last = request.messages[-1].content if request.messages else ""
        return CompletionResponse(choices=[f"[openai-mock] You said: '{last}'"])
