"""
Reasoning Service — handles all communication with the optional language model.

The model sits behind an OpenAI-compatible API endpoint. It is used for two
things only: picking tools for a topic and writing an agent's finding. Both
callers have deterministic fallbacks, so the service reports failure by
returning None and never raises.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from sciencecollab.config import settings

logger = logging.getLogger(__name__)


class ReasoningService:
    """
    Text-in / text-out interface to the reasoning model.

    Usage:
        service = ReasoningService()
        if service.available:
            text = await service.generate("Pick tools for ...", max_tokens=80, timeout=6)
    """

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None, model_id: Optional[str] = None):
        self._client = None
        self.base_url = settings.llm_base_url if base_url is None else base_url
        self.api_key = settings.llm_api_key if api_key is None else api_key
        self.model_id = model_id or settings.llm_model_id

    @property
    def available(self) -> bool:
        return bool(self.base_url)

    async def _get_client(self):
        """Lazy-initialize the API client."""
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(
                api_key=self.api_key or "not-needed",
                base_url=self.base_url,
                max_retries=0,
            )
        return self._client

    async def generate(
        self,
        prompt: str,
        max_tokens: int = 256,
        timeout: float = 15.0,
        temperature: float = 0.3,
    ) -> Optional[str]:
        """
        Generate text from the model within a hard timeout.

        Returns:
            The stripped response text, or None if the service is not
            configured, errors, times out, or returns nothing.
        """
        if not self.available:
            return None

        try:
            client = await self._get_client()
            response = await asyncio.wait_for(
                client.chat.completions.create(
                    model=self.model_id,
                    messages=[{"role": "user", "content": prompt}],
                    max_tokens=max_tokens,
                    temperature=temperature,
                ),
                timeout,
            )
        except asyncio.TimeoutError:
            logger.info(f"Reasoning service timed out after {timeout:.0f}s")
            return None
        except Exception as e:
            logger.warning(f"Reasoning service error: {e}")
            return None

        if not response.choices:
            return None
        text = (response.choices[0].message.content or "").strip()
        return text or None

    @staticmethod
    def extract_json(text: str) -> str:
        """Extract JSON from a response that might include markdown code blocks."""
        if "```json" in text:
            start = text.index("```json") + 7
            end = text.find("```", start)
            if end == -1:
                return text[start:].strip()
            return text[start:end].strip()
        if "```" in text:
            start = text.index("```") + 3
            end = text.find("```", start)
            if end == -1:
                return text[start:].strip()
            return text[start:end].strip()
        # Try to find raw JSON
        for i, char in enumerate(text):
            if char in "{[":
                depth = 0
                for j in range(i, len(text)):
                    if text[j] in "{[":
                        depth += 1
                    elif text[j] in "}]":
                        depth -= 1
                    if depth == 0:
                        return text[i : j + 1]
        return text.strip()
