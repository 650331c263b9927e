"""
OpenAI fetcher.

Wraps OpenAI chat completions and reports usage without modifying behavior.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from openai import OpenAI

from ..core.pricing import Modality
from ..core.thinking import (
    NoThinking,
    ThinkingBudget,
    ThinkingDirective,
    ThinkingLevelDirective,
)
from ..core.token_counter import ModalityCount, UsageReport
from ..storage.models import FileAttachment

from .base import ProviderResult

logger = logging.getLogger(__name__)

_AUDIO_FORMATS = {"audio/wav": "wav", "audio/x-wav": "wav", "audio/mpeg": "mp3", "audio/mp3": "mp3"}


class OpenAIFetcher:
    """Usage fetcher backed by OpenAI chat completions.

    All failures are loud to ensure usage is never silently dropped.
    """

    def __init__(self, client: Optional[Any] = None):
        """Initialize OpenAI fetcher.

        Args:
            client: Preconfigured OpenAI client (created lazily if omitted)
        """
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = OpenAI()
        return self._client

    def fetch_usage(
        self,
        model: str,
        prompt: str,
        attachments: Sequence[FileAttachment] = (),
        thinking: ThinkingDirective = NoThinking(),
    ) -> ProviderResult:
        """Create a chat completion and report its usage.

        Raises:
            ValueError: If the request is empty, an attachment type is
                unsupported, or the response lacks usage information
            OpenAI API errors: Propagated without modification
        """
        content = _build_content(prompt, attachments)
        if not content:
            raise ValueError("prompt or attachments are required")

        kwargs: Dict[str, Any] = {}
        if isinstance(thinking, ThinkingLevelDirective):
            kwargs["reasoning_effort"] = thinking.level.value.lower()
        elif isinstance(thinking, ThinkingBudget):
            logger.warning("OpenAI chat has no thinking budget; ignoring budget of %d", thinking.tokens)

        logger.info("Calling %s with %d content parts", model, len(content))
        response = self.client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": content}],
            **kwargs,
        )

        usage = response.usage
        if not usage:
            raise ValueError("OpenAI response missing usage information")

        text = None
        if response.choices:
            text = response.choices[0].message.content

        return ProviderResult(usage=extract_usage(usage), text=text, request_config=kwargs)


def extract_usage(usage: Any) -> UsageReport:
    """Convert OpenAI completion usage into a UsageReport."""
    prompt_tokens = usage.prompt_tokens or 0
    completion_tokens = usage.completion_tokens or 0

    prompt_details = getattr(usage, "prompt_tokens_details", None)
    audio_in = (getattr(prompt_details, "audio_tokens", None) or 0) if prompt_details else 0

    completion_details = getattr(usage, "completion_tokens_details", None)
    reasoning = 0
    audio_out = 0
    if completion_details:
        reasoning = getattr(completion_details, "reasoning_tokens", None) or 0
        audio_out = getattr(completion_details, "audio_tokens", None) or 0

    input_details = [ModalityCount(Modality.TEXT.value, prompt_tokens - audio_in)]
    if audio_in:
        input_details.append(ModalityCount(Modality.AUDIO.value, audio_in))

    return UsageReport(
        input_units=prompt_tokens,
        input_details=tuple(input_details),
        text_output_units=completion_tokens - reasoning - audio_out,
        thinking_output_units=reasoning,
        audio_output_units=audio_out,
    )


def _build_content(prompt: str, attachments: Sequence[FileAttachment]) -> List[Dict[str, Any]]:
    content: List[Dict[str, Any]] = []
    if prompt.strip():
        content.append({"type": "text", "text": prompt})
    for attachment in attachments:
        if attachment.mime_type.startswith("image/"):
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:{attachment.mime_type};base64,{attachment.data}"},
            })
        elif attachment.mime_type in _AUDIO_FORMATS:
            content.append({
                "type": "input_audio",
                "input_audio": {"data": attachment.data, "format": _AUDIO_FORMATS[attachment.mime_type]},
            })
        else:
            raise ValueError(f"Unsupported attachment type for OpenAI: {attachment.mime_type}")
    return content
