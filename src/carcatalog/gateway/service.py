"""Core gateway service: Anthropic Messages API calls and response parsing.

Issues the three independent request types -- raw text transcription,
structured record extraction, narrative summary -- plus chat turns. Every
call is bounded by a fixed timeout and every SDK failure is translated into
the typed GatewayError family so callers never see SDK exceptions.

No retries happen here unless ``rate_limit_retries`` is configured, and then
only for rate limiting, with exponential backoff via tenacity.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import re
import time
from typing import Sequence

import anthropic
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from carcatalog.config.settings import GatewaySettings
from carcatalog.errors import (
    BillingDisabledError,
    GatewayError,
    GatewayTimeoutError,
    InvalidCredentialError,
    RateLimitedError,
)
from carcatalog.gateway.chat import ChatSession
from carcatalog.gateway.prompt import (
    TEXT_EXTRACTION_PROMPT,
    build_chat_system_prompt,
    build_records_prompt,
    build_summary_prompt,
)
from carcatalog.gateway.schemas import ExtractedSpecification
from carcatalog.models import CarSpecification
from carcatalog.source.types import SourceDocument

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(
    r"^\s*```(?:json)?\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL
)

_BILLING_MARKERS = ("credit balance", "billing")


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences wrapping JSON content.

    Handles ``\\`\\`\\`json ... \\`\\`\\`` and bare ``\\`\\`\\` ... \\`\\`\\``
    wrappers.  Returns the inner content stripped of whitespace.
    If no code fence is detected, returns the original text stripped.
    """
    text = text.strip()
    match = _CODE_FENCE_RE.match(text)
    return match.group(1).strip() if match else text


def translate_api_error(error: anthropic.APIError) -> GatewayError:
    """Map an Anthropic SDK exception onto the gateway error taxonomy."""
    if isinstance(error, anthropic.AuthenticationError):
        return InvalidCredentialError(detail=error.message)
    if isinstance(error, anthropic.RateLimitError):
        return RateLimitedError(detail=error.message)
    if isinstance(error, anthropic.APITimeoutError):
        return GatewayTimeoutError(detail=error.message)
    if isinstance(error, anthropic.APIStatusError):
        lowered = error.message.lower()
        if any(marker in lowered for marker in _BILLING_MARKERS):
            return BillingDisabledError(detail=error.message)
        return GatewayError(
            f"The AI request failed (HTTP {error.status_code}).",
            detail=error.message,
        )
    if isinstance(error, anthropic.APIConnectionError):
        return GatewayError("Could not connect to the AI service.", detail=error.message)
    return GatewayError(f"The AI request failed: {error.message}", detail=error.message)


class ExtractionGateway:
    """Wrapper around the model for catalog extraction tasks.

    Args:
        settings: Gateway configuration (model, timeouts, retries).
        client: Optional pre-built ``AsyncAnthropic`` client (tests inject a mock).
    """

    def __init__(
        self,
        settings: GatewaySettings,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self.settings = settings
        # SDK-level retries are disabled; retry policy lives in complete()
        self._client = client or anthropic.AsyncAnthropic(
            api_key=settings.api_key or None,
            max_retries=0,
        )

    async def close(self) -> None:
        await self._client.close()

    # ------------------------------------------------------------------
    # Extraction tasks
    # ------------------------------------------------------------------

    async def extract_text(self, document: SourceDocument) -> str:
        """Transcribe all text in *document*, preserving reading order."""
        logger.info(
            "Text extraction: %s (%d pages)", document.label, document.page_count
        )
        return await self.complete(
            task="extract_text",
            messages=[
                {
                    "role": "user",
                    "content": _document_content(document, TEXT_EXTRACTION_PROMPT),
                }
            ],
            timeout=self.settings.extraction_timeout_seconds,
        )

    async def extract_records(
        self, document: SourceDocument
    ) -> tuple[list[CarSpecification], str]:
        """Extract car specification rows from *document*.

        Returns:
            Tuple of (records, raw_json) where raw_json is the model's JSON
            payload with any code fence removed, otherwise verbatim.

        Raises:
            GatewayError: On call failure or when the payload is not a JSON array.
        """
        logger.info(
            "Record extraction: %s (%d pages)", document.label, document.page_count
        )
        raw = await self.complete(
            task="extract_records",
            messages=[
                {
                    "role": "user",
                    "content": _document_content(document, build_records_prompt()),
                }
            ],
            timeout=self.settings.extraction_timeout_seconds,
        )
        raw_json = strip_code_fences(raw)
        return parse_records(raw_json), raw_json

    async def summarize(self, text: str) -> str:
        """Write a short narrative summary of previously extracted text."""
        logger.info("Summary requested for %d chars of text", len(text))
        return await self.complete(
            task="summarize",
            messages=[{"role": "user", "content": build_summary_prompt(text)}],
            timeout=self.settings.summary_timeout_seconds,
            max_tokens=self.settings.summary_max_tokens,
        )

    def create_chat_session(self, records: Sequence[CarSpecification]) -> ChatSession:
        """Start a conversation grounded in *records*."""
        logger.debug("Chat session seeded with %d records", len(records))
        return ChatSession(self, build_chat_system_prompt(records))

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def complete(
        self,
        task: str,
        messages: list[dict],
        timeout: float,
        system: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Run one Messages API call and return its text.

        Rate-limited calls are retried with exponential backoff when
        ``rate_limit_retries`` is set; every other failure is raised at once.
        """
        if self.settings.rate_limit_retries <= 0:
            return await self._complete_once(task, messages, timeout, system, max_tokens)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.rate_limit_retries + 1),
            wait=wait_exponential(
                multiplier=1,
                min=self.settings.backoff_base,
                max=self.settings.backoff_max,
            ),
            retry=retry_if_exception_type(RateLimitedError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return await retrying(
            self._complete_once, task, messages, timeout, system, max_tokens
        )

    async def _complete_once(
        self,
        task: str,
        messages: list[dict],
        timeout: float,
        system: str | None,
        max_tokens: int | None,
    ) -> str:
        kwargs: dict = {
            "model": self.settings.model,
            "max_tokens": max_tokens or self.settings.max_tokens,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system

        start = time.monotonic()
        try:
            message = await asyncio.wait_for(
                self._client.messages.create(**kwargs), timeout=timeout
            )
        except asyncio.TimeoutError as e:
            logger.error("%s timed out after %.0fs", task, timeout)
            raise GatewayTimeoutError(detail=f"{task} exceeded {timeout}s") from e
        except anthropic.APIError as e:
            translated = translate_api_error(e)
            logger.error(
                "%s failed (%s): %s", task, translated.kind.value, e.message
            )
            raise translated from e

        text = "".join(
            block.text for block in message.content if block.type == "text"
        ).strip()
        if not text:
            logger.error("%s returned an empty response", task)
            raise GatewayError("The AI returned an empty response.")

        logger.info(
            "%s complete in %.1fs (model=%s, %d chars)",
            task,
            time.monotonic() - start,
            self.settings.model,
            len(text),
        )
        return text


def parse_records(raw_json: str) -> list[CarSpecification]:
    """Validate a JSON array of records and assign per-run ids.

    Items missing a required field (manufacturer, modelName, grade, price)
    are dropped with a warning. Ids have the form ``"<run-stamp>-<index>"``
    and are unique within one call.

    Raises:
        GatewayError: If *raw_json* is not a JSON array.
    """
    try:
        payload = json.loads(raw_json)
    except json.JSONDecodeError as e:
        logger.error("Record payload is not valid JSON: %s", str(e)[:200])
        raise GatewayError(
            "The AI returned structured data that is not valid JSON.", detail=str(e)
        ) from e

    if not isinstance(payload, list):
        raise GatewayError(
            "The AI returned structured data in an unexpected shape.",
            detail=f"expected a JSON array, got {type(payload).__name__}",
        )

    run_stamp = int(time.time() * 1000)
    records: list[CarSpecification] = []

    for index, item in enumerate(payload):
        try:
            spec = ExtractedSpecification.model_validate(item)
        except ValidationError as e:
            logger.warning("Dropping record %d: %s", index, str(e)[:200])
            continue
        records.append(CarSpecification(id=f"{run_stamp}-{index}", **spec.model_dump()))

    logger.info("Parsed %d of %d records", len(records), len(payload))
    return records


def _document_content(document: SourceDocument, prompt: str) -> list[dict]:
    """Build Messages API content blocks: page images or page text, then the prompt."""
    blocks: list[dict] = [
        {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": page.media_type,
                "data": base64.standard_b64encode(page.data).decode("utf-8"),
            },
        }
        for page in document.pages
    ]
    if document.text:
        blocks.append(
            {"type": "text", "text": f"<web_page>\n{document.text}\n</web_page>"}
        )
    blocks.append({"type": "text", "text": prompt})
    return blocks
