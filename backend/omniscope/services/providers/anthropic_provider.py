"""Anthropic provider for Claude models, using forced tool use for structured output."""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

import anthropic

from .base import ExtractionResult, StructuredExtractor

logger = logging.getLogger(__name__)


class AnthropicExtractor(StructuredExtractor):
    """Provider for Anthropic Claude models.

    The schema is exposed as the only tool and the model is forced to call it;
    the tool input is the structured result.
    """

    provider = "anthropic"
    model_id = "claude-sonnet-4.5"

    # Map friendly names to API model IDs
    MODEL_MAP = {
        "claude-sonnet-4.5": "claude-sonnet-4-5-20250929",
        "claude-opus-4.5": "claude-opus-4-5-20251101",
    }

    def __init__(
        self,
        model_id: Optional[str] = None,
        timeout: float = 60.0,
        api_key: Optional[str] = None,
        client: Optional[anthropic.AsyncAnthropic] = None,
        max_tokens: int = 4096,
    ):
        self.model_id = model_id or self.model_id
        self._api_model = self.MODEL_MAP.get(self.model_id, self.model_id)
        self.max_tokens = max_tokens
        self._api_key = api_key
        self._timeout = timeout
        self._client = client

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        """Lazily initialize the Anthropic client."""
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(
                api_key=self._api_key, timeout=self._timeout, max_retries=1
            )
        return self._client

    async def extract(
        self,
        system_prompt: str,
        user_prompt: str,
        schema_name: str,
        schema: dict[str, Any],
    ) -> ExtractionResult:
        try:
            response = await self.client.messages.create(
                model=self._api_model,
                max_tokens=self.max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                tools=[
                    {
                        "name": schema_name,
                        "description": "Record the extracted meeting intelligence.",
                        "input_schema": schema,
                    }
                ],
                tool_choice={"type": "tool", "name": schema_name},
            )
        except Exception as e:
            logger.error(f"Anthropic extraction error: {e}")
            return ExtractionResult.failure(str(e), provider=self.provider, model=self.model_id)

        for block in response.content:
            if getattr(block, "type", None) == "tool_use" and block.name == schema_name:
                if isinstance(block.input, dict):
                    return ExtractionResult(
                        data=block.input,
                        metadata={"provider": self.provider, "model": self.model_id},
                    )

        return ExtractionResult.failure(
            f"No {schema_name} tool call in response (stop_reason={response.stop_reason})",
            provider=self.provider,
            model=self.model_id,
        )

    async def health_check(self) -> bool:
        """Check Anthropic API availability."""
        if not (self._api_key or os.getenv("ANTHROPIC_API_KEY")):
            logger.warning("ANTHROPIC_API_KEY not set")
            return False
        return True
