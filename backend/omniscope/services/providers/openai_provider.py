"""OpenAI provider using strict JSON-schema structured outputs."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from openai import AsyncOpenAI

from .base import ExtractionResult, StructuredExtractor

logger = logging.getLogger(__name__)


class OpenAIExtractor(StructuredExtractor):
    """Provider for OpenAI GPT models.

    Uses ``response_format={"type": "json_schema", "strict": true}`` so the
    reply is either schema-valid JSON or a refusal/error.
    """

    provider = "openai"
    model_id = "gpt-4o"

    def __init__(
        self,
        model_id: Optional[str] = None,
        timeout: float = 60.0,
        api_key: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model_id = model_id or self.model_id
        self._api_key = api_key
        self._timeout = timeout
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        """Lazily initialize the client so a missing key surfaces as an extraction failure."""
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key, timeout=self._timeout, max_retries=1)
        return self._client

    async def extract(
        self,
        system_prompt: str,
        user_prompt: str,
        schema_name: str,
        schema: dict[str, Any],
    ) -> ExtractionResult:
        try:
            response = await self.client.chat.completions.create(
                model=self.model_id,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": schema_name,
                        "strict": True,
                        "schema": schema,
                    },
                },
            )
        except Exception as e:
            logger.error(f"OpenAI extraction error: {e}")
            return ExtractionResult.failure(str(e), provider=self.provider, model=self.model_id)

        message = response.choices[0].message if response.choices else None
        if message is None or getattr(message, "refusal", None):
            reason = getattr(message, "refusal", None) or "empty response"
            return ExtractionResult.failure(
                f"Model refused or returned nothing: {reason}",
                provider=self.provider,
                model=self.model_id,
            )

        content = message.content
        if not isinstance(content, str):
            return ExtractionResult.failure(
                "Unexpected LLM response format", provider=self.provider, model=self.model_id
            )

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            return ExtractionResult.failure(
                f"Response is not JSON: {e}", provider=self.provider, model=self.model_id
            )
        if not isinstance(data, dict):
            return ExtractionResult.failure(
                "Response JSON is not an object", provider=self.provider, model=self.model_id
            )

        return ExtractionResult(data=data, metadata={"provider": self.provider, "model": self.model_id})

    async def health_check(self) -> bool:
        """Check OpenAI API availability."""
        try:
            await self.client.models.list()
            return True
        except Exception as e:
            logger.warning(f"OpenAI health check failed: {e}")
            return False
