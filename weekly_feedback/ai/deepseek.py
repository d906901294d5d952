"""DeepSeek AI client for report analysis and submission insights."""

import json
import logging
from typing import Dict, Any, Optional, List

from openai import AsyncOpenAI

from ..runtime import RuntimeConfig

logger = logging.getLogger(__name__)


class AnalysisUnavailable(Exception):
    """The backend is unconfigured, failed, or returned something unusable."""
    pass


def strip_code_fences(text: str) -> str:
    """Remove ```json ... ``` wrappers some models add around JSON."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


class DeepSeekClient:
    """
    Client for the DeepSeek chat API (OpenAI-compatible).

    Calls are single-shot: a failure is raised to the caller, which decides
    how to degrade. There is no retry.
    """

    def __init__(self, config: Optional[RuntimeConfig] = None, client: Optional[AsyncOpenAI] = None):
        self.config = config or RuntimeConfig.from_settings()
        self.model = self.config.deepseek_model
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self.config.deepseek_api_key)

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.config.deepseek_api_key:
                raise AnalysisUnavailable("DEEPSEEK_API_KEY not configured")
            self._client = AsyncOpenAI(
                api_key=self.config.deepseek_api_key,
                base_url=self.config.deepseek_base_url,
                timeout=self.config.analysis_timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def _call_api(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.3,
        max_tokens: int = 4096,
        response_format: Optional[Dict] = None,
    ) -> str:
        """Make an API call to DeepSeek."""
        try:
            kwargs = {
                "model": self.model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }

            # DeepSeek supports JSON mode
            if response_format:
                kwargs["response_format"] = response_format

            response = await self.client.chat.completions.create(**kwargs)
            return response.choices[0].message.content or ""

        except AnalysisUnavailable:
            raise
        except Exception as e:
            logger.error(f"DeepSeek API error: {e}")
            raise AnalysisUnavailable(str(e)) from e

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4096,
    ) -> Dict[str, Any]:
        """Run a JSON-mode completion and parse the object it returns."""
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        response = await self._call_api(
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            response_format={"type": "json_object"},
        )

        try:
            parsed = json.loads(strip_code_fences(response))
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse DeepSeek response: {response[:500]}")
            raise AnalysisUnavailable(f"Unparseable response: {e}") from e

        if not isinstance(parsed, dict):
            raise AnalysisUnavailable("Response JSON is not an object")
        return parsed
