# app/services/llm_client.py
"""
Text-generation collaborator.

    complete(system_prompt, user_prompt, temperature=..., max_tokens=...) -> raw text

Backed by OpenAI chat completions in JSON mode. If no API key is configured
(or generation is switched off) the client reports itself as disabled and
every call raises GenerativeUnavailable; callers never see SDK exceptions.
"""

from __future__ import annotations

import logging
from typing import Optional

from openai import APIConnectionError, APIError, APITimeoutError, OpenAI, RateLimitError

from app.config import settings
from app.errors import GenerativeUnavailable, RateLimited

log = logging.getLogger("vitalis.llm")


class OpenAITextClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        enabled: Optional[bool] = None,
    ) -> None:
        api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_MODEL
        self.timeout = timeout if timeout is not None else settings.GENERATIVE_TIMEOUT_SECONDS
        self._switched_on = settings.GENERATIVE_ENABLED if enabled is None else enabled

        if not api_key:
            self.client = None
            return
        # single attempt; the engine bounds the wait
        self.client = OpenAI(api_key=api_key, timeout=self.timeout, max_retries=0)

    def enabled(self) -> bool:
        return self._switched_on and self.client is not None

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = 0.7,
        max_tokens: int = 1500,
    ) -> str:
        if not self._switched_on:
            raise GenerativeUnavailable("disabled")
        if self.client is None:
            raise GenerativeUnavailable("unconfigured")

        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                response_format={"type": "json_object"},
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except RateLimitError as e:
            log.warning("llm rate limited model=%s: %s", self.model, e)
            raise RateLimited(str(e)) from e
        except APITimeoutError as e:
            raise GenerativeUnavailable("timeout") from e
        except (APIConnectionError, APIError) as e:
            log.warning("llm call failed model=%s: %s", self.model, e)
            raise GenerativeUnavailable(str(e)) from e

        return resp.choices[0].message.content or ""
