"""Gemini client for article summaries and tags."""

from enum import StrEnum

import httpx
from google import genai
from google.genai import errors, types

from readinglist.config import ConfigurationError
from readinglist.utils.logging import get_logger

logger = get_logger(__name__)

SUMMARIZE_PROMPT = "Summarize the following article: "

TAGS_PROMPT = "Generate a comma-separated list of tags for the following article: "


class EnrichmentStep(StrEnum):
    """Which enrichment request failed."""

    SUMMARY = "summary"
    TAGS = "tags"


class EnrichmentError(Exception):
    """Raised when Gemini fails or returns nothing for a step."""

    def __init__(self, step: EnrichmentStep, reason: str) -> None:
        self.step = step
        self.reason = reason
        super().__init__(f"{step} generation failed: {reason}")


def split_tags(text: str) -> list[str]:
    """Split a comma-separated tag response.

    Tags are not trimmed or deduplicated: ``"a, b,c"`` gives ``["a", " b", "c"]``.
    """
    return text.split(",")


class GeminiClient:
    """Client for generating summaries and tags with the Gemini API."""

    def __init__(self, api_key: str, model_name: str = "gemini-2.5-flash") -> None:
        if not api_key or not api_key.strip():
            raise ConfigurationError("A Gemini API key is required for article enrichment")
        self._model_name = model_name
        self._client = genai.Client(api_key=api_key)
        logger.info("Gemini client initialized", model=model_name)

    async def generate_content(self, prompt: str, *, temperature: float = 0.3) -> str:
        """Generate text for a prompt.

        Args:
            prompt: The prompt to send to the model.
            temperature: Sampling temperature (0.0-1.0).

        Returns:
            The generated text.

        Raises:
            RuntimeError: If the model returns no content.
        """
        config = types.GenerateContentConfig(temperature=temperature)
        response = await self._client.aio.models.generate_content(
            model=self._model_name,
            contents=prompt,
            config=config,
        )
        if not response.text:
            raise RuntimeError("Model returned empty response")
        return response.text

    async def summarize_article(self, body: str) -> str:
        """Generate a prose summary of an article body.

        Raises:
            EnrichmentError: With step SUMMARY if generation fails.
        """
        logger.info("Summarizing article", body_length=len(body))
        summary = await self._generate(EnrichmentStep.SUMMARY, SUMMARIZE_PROMPT + body)
        logger.info("Article summarized", summary_length=len(summary))
        return summary

    async def generate_tags(self, body: str) -> list[str]:
        """Generate tags for an article body.

        Raises:
            EnrichmentError: With step TAGS if generation fails.
        """
        logger.info("Generating tags", body_length=len(body))
        tags = split_tags(await self._generate(EnrichmentStep.TAGS, TAGS_PROMPT + body))
        logger.info("Tags generated", count=len(tags))
        return tags

    async def _generate(self, step: EnrichmentStep, prompt: str) -> str:
        try:
            return await self.generate_content(prompt)
        except errors.APIError as e:
            logger.warning("Gemini API error", step=step, code=e.code, error=str(e))
            raise EnrichmentError(step, f"API error {e.code}") from e
        except httpx.HTTPError as e:
            logger.warning("Gemini request failed", step=step, error=str(e))
            raise EnrichmentError(step, f"request error: {e}") from e
        except RuntimeError as e:
            logger.warning("Gemini returned no content", step=step)
            raise EnrichmentError(step, "empty response") from e
