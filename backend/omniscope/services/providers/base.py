"""Base classes for structured extraction providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class ExtractionResult:
    """Outcome of one structured extraction call.

    Exactly one of ``data`` (parsed JSON object) or ``error`` is set.
    """
    data: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None and self.data is not None

    @classmethod
    def failure(cls, error: str, **metadata: Any) -> "ExtractionResult":
        return cls(error=error, metadata=metadata)


class StructuredExtractor(ABC):
    """Base class for all LLM providers able to return schema-constrained JSON.

    Implementations wrap one vendor SDK and never raise on provider failure:
    transport errors, refusals and non-JSON content come back as
    ``ExtractionResult.failure``.
    """

    provider: str
    model_id: str

    @abstractmethod
    async def extract(
        self,
        system_prompt: str,
        user_prompt: str,
        schema_name: str,
        schema: dict[str, Any],
    ) -> ExtractionResult:
        """Run one extraction.

        Args:
            system_prompt: Instructions for the model
            user_prompt: The content to analyze
            schema_name: Name for the JSON schema / tool
            schema: Strict JSON schema the output must satisfy

        Returns:
            ExtractionResult with the parsed object or an error message
        """
        pass

    async def health_check(self) -> bool:
        """Check if provider is available and responding."""
        return True
