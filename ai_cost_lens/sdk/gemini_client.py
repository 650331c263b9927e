"""
Google Gemini fetcher.

Calls Gemini, Imagen and Veo models through google-genai and reports usage
in the engine's terms.
"""

import base64
import logging
import time
from decimal import Decimal
from typing import Any, List, Optional, Sequence

from google import genai
from google.genai import types

from ..core.thinking import (
    NoThinking,
    ThinkingDirective,
    resolve_thinking_budget,
    supports_thinking,
)
from ..core.token_counter import (
    GeneratedMedia,
    MediaKind,
    ModalityCount,
    UsageReport,
)
from ..storage.models import FileAttachment

from .base import ProviderResult

logger = logging.getLogger(__name__)

VIDEO_POLL_SECONDS = 5


class GeminiFetcher:
    """Usage fetcher backed by the google-genai client.

    The client reads its API key from the environment unless one is passed
    in. Provider errors propagate unchanged.
    """

    def __init__(self, client: Optional[Any] = None, poll_interval: float = VIDEO_POLL_SECONDS,
                 video_duration_seconds: Optional[int] = None):
        """Initialize Gemini fetcher.

        Args:
            client: Preconfigured genai.Client (created lazily if omitted)
            poll_interval: Seconds between Veo operation polls
            video_duration_seconds: Requested clip length for Veo models
        """
        self._client = client
        self.poll_interval = poll_interval
        self.video_duration_seconds = video_duration_seconds

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = genai.Client()
        return self._client

    def fetch_usage(
        self,
        model: str,
        prompt: str,
        attachments: Sequence[FileAttachment] = (),
        thinking: ThinkingDirective = NoThinking(),
    ) -> ProviderResult:
        """Run the model and report its usage.

        Raises:
            google.genai errors: Propagated without modification
        """
        if "imagen" in model:
            return self._generate_images(model, prompt)
        if "veo" in model:
            return self._generate_video(model, prompt)
        return self._generate_content(model, prompt, attachments, thinking)

    def _generate_images(self, model: str, prompt: str) -> ProviderResult:
        logger.info("Generating image with %s", model)
        response = self.client.models.generate_images(
            model=model,
            prompt=prompt,
            config=types.GenerateImagesConfig(number_of_images=1, aspect_ratio="1:1"),
        )
        media = tuple(
            GeneratedMedia(
                kind=MediaKind.IMAGE,
                mime_type="image/png",
                name=f"Imagen Generation {i + 1}",
                data=_b64(generated.image.image_bytes),
            )
            for i, generated in enumerate(response.generated_images or [])
        )
        return ProviderResult(
            usage=UsageReport(input_units=0, generated_media=media),
            request_config={"number_of_images": 1, "aspect_ratio": "1:1"},
        )

    def _generate_video(self, model: str, prompt: str) -> ProviderResult:
        request_config = {"number_of_videos": 1, "resolution": "720p", "aspect_ratio": "16:9"}
        if self.video_duration_seconds is not None:
            request_config["duration_seconds"] = self.video_duration_seconds

        logger.info("Generating video with %s", model)
        operation = self.client.models.generate_videos(
            model=model,
            prompt=prompt,
            config=types.GenerateVideosConfig(**request_config),
        )
        while not operation.done:
            time.sleep(self.poll_interval)
            operation = self.client.operations.get(operation)

        media: List[GeneratedMedia] = []
        generated = getattr(operation.response, "generated_videos", None) or []
        for i, item in enumerate(generated):
            media.append(GeneratedMedia(
                kind=MediaKind.VIDEO,
                mime_type="video/mp4",
                name=f"Veo Video {i + 1}",
                uri=getattr(item.video, "uri", None),
            ))

        duration = None
        if self.video_duration_seconds is not None:
            duration = Decimal(self.video_duration_seconds * max(len(media), 1))
        return ProviderResult(
            usage=UsageReport(input_units=0, output_duration_seconds=duration, generated_media=tuple(media)),
            request_config=request_config,
        )

    def _generate_content(
        self,
        model: str,
        prompt: str,
        attachments: Sequence[FileAttachment],
        thinking: ThinkingDirective,
    ) -> ProviderResult:
        parts = []
        if prompt.strip():
            parts.append(types.Part.from_text(text=prompt))
        for attachment in attachments:
            parts.append(types.Part.from_bytes(
                data=base64.b64decode(attachment.data),
                mime_type=attachment.mime_type,
            ))

        request_config = {}
        config = None
        budget = resolve_thinking_budget(thinking, model) if supports_thinking(model) else None
        if budget is not None:
            request_config["thinking_config"] = {"thinking_budget": budget}
            config = types.GenerateContentConfig(
                thinking_config=types.ThinkingConfig(thinking_budget=budget)
            )

        logger.info("Calling %s with %d parts", model, len(parts))
        response = self.client.models.generate_content(model=model, contents=parts, config=config)

        text_chunks: List[str] = []
        media: List[GeneratedMedia] = []
        candidates = response.candidates or []
        content = candidates[0].content if candidates else None
        for part in (content.parts if content and content.parts else []):
            if part.text:
                text_chunks.append(part.text)
            if part.inline_data:
                item = _media_from_inline(part.inline_data)
                if item is not None:
                    media.append(item)

        usage = extract_usage(response.usage_metadata, media)
        return ProviderResult(
            usage=usage,
            text="".join(text_chunks) or None,
            request_config=request_config,
        )


def extract_usage(metadata: Any, media: Sequence[GeneratedMedia] = ()) -> UsageReport:
    """Convert Gemini usage metadata into a UsageReport.

    Candidate token details, when present, split output into text, audio and
    image units; otherwise all candidate tokens count as text.
    """
    if metadata is None:
        return UsageReport(generated_media=tuple(media))

    input_details = None
    if metadata.prompt_tokens_details:
        input_details = tuple(
            ModalityCount(modality=_modality_name(d.modality), units=d.token_count or 0)
            for d in metadata.prompt_tokens_details
        )

    text_units = metadata.candidates_token_count or 0
    audio_units = 0
    image_units = 0
    if metadata.candidates_tokens_details:
        text_units = 0
        for detail in metadata.candidates_tokens_details:
            name = _modality_name(detail.modality)
            count = detail.token_count or 0
            if name == "AUDIO":
                audio_units += count
            elif name == "IMAGE":
                image_units += count
            else:
                text_units += count

    return UsageReport(
        input_units=metadata.prompt_token_count,
        input_details=input_details,
        text_output_units=text_units,
        thinking_output_units=metadata.thoughts_token_count,
        audio_output_units=audio_units,
        image_output_units=image_units,
        generated_media=tuple(media),
    )


def _modality_name(modality: Any) -> str:
    if modality is None:
        return "TEXT"
    return str(getattr(modality, "value", modality))


def _media_from_inline(blob: Any) -> Optional[GeneratedMedia]:
    mime_type = blob.mime_type or ""
    for prefix, kind, name in (
        ("image/", MediaKind.IMAGE, "Generated Image"),
        ("audio/", MediaKind.AUDIO, "Generated Audio"),
        ("video/", MediaKind.VIDEO, "Generated Video"),
    ):
        if mime_type.startswith(prefix):
            return GeneratedMedia(kind=kind, mime_type=mime_type, name=name, data=_b64(blob.data))
    return None


def _b64(data: Optional[bytes]) -> Optional[str]:
    if data is None:
        return None
    return base64.b64encode(data).decode("ascii")
