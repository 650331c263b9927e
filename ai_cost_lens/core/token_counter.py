"""
Usage reports and normalization.

Turns the usage counts a provider returns, with whatever fields it happens
to include, into a canonical per-modality breakdown the calculator can
price without further checks.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .pricing import Modality

logger = logging.getLogger(__name__)

# Assumed clip length when a video is generated without duration metadata
DEFAULT_VIDEO_DURATION_SECONDS = 5


class MediaKind(Enum):
    """Kinds of generated media items."""
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"


@dataclass(frozen=True)
class ModalityCount:
    """Units consumed for one input modality."""
    modality: str
    units: Optional[int] = None


@dataclass(frozen=True)
class GeneratedMedia:
    """A media item produced by the model."""
    kind: MediaKind
    mime_type: str
    name: str = ""
    data: Optional[str] = None  # base64
    uri: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "mime_type": self.mime_type,
            "name": self.name,
            "data": self.data,
            "uri": self.uri,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneratedMedia":
        return cls(
            kind=MediaKind(data["kind"]),
            mime_type=data["mime_type"],
            name=data.get("name", ""),
            data=data.get("data"),
            uri=data.get("uri"),
        )


@dataclass(frozen=True)
class UsageReport:
    """Raw usage counts as reported by a provider.

    Every numeric field is optional; providers omit what they do not track.
    """
    input_units: Optional[int] = None
    input_details: Optional[Tuple[ModalityCount, ...]] = None
    text_output_units: Optional[int] = None
    thinking_output_units: Optional[int] = None
    audio_output_units: Optional[int] = None
    image_output_units: Optional[int] = None
    output_duration_seconds: Optional[Decimal] = None
    generated_media: Tuple[GeneratedMedia, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input_units": self.input_units,
            "input_details": (
                None if self.input_details is None
                else [{"modality": d.modality, "units": d.units} for d in self.input_details]
            ),
            "text_output_units": self.text_output_units,
            "thinking_output_units": self.thinking_output_units,
            "audio_output_units": self.audio_output_units,
            "image_output_units": self.image_output_units,
            "output_duration_seconds": (
                None if self.output_duration_seconds is None
                else str(self.output_duration_seconds)
            ),
            "generated_media": [m.to_dict() for m in self.generated_media],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageReport":
        """Build a report from a plain mapping (JSON/YAML document).

        Raises:
            ValueError: If a field has the wrong shape
        """
        details = data.get("input_details")
        if details is not None:
            if not isinstance(details, list):
                raise ValueError("'input_details' must be a list")
            details = tuple(
                ModalityCount(modality=str(d["modality"]), units=_optional_int(d.get("units"), "units"))
                for d in details
            )
        duration = data.get("output_duration_seconds")
        return cls(
            input_units=_optional_int(data.get("input_units"), "input_units"),
            input_details=details,
            text_output_units=_optional_int(data.get("text_output_units"), "text_output_units"),
            thinking_output_units=_optional_int(data.get("thinking_output_units"), "thinking_output_units"),
            audio_output_units=_optional_int(data.get("audio_output_units"), "audio_output_units"),
            image_output_units=_optional_int(data.get("image_output_units"), "image_output_units"),
            output_duration_seconds=None if duration is None else Decimal(str(duration)),
            generated_media=tuple(
                GeneratedMedia.from_dict(m) for m in data.get("generated_media") or []
            ),
        )


@dataclass(frozen=True)
class NormalizedUsage:
    """Canonical usage breakdown with every count present."""
    per_modality_input_units: Tuple[Tuple[str, int], ...]
    total_input_units: int
    text_output_units: int = 0
    thinking_output_units: int = 0
    audio_output_units: int = 0
    image_output_units: int = 0
    generated_image_count: int = 0
    generated_video_count: int = 0
    generated_audio_count: int = 0
    output_duration_seconds: Decimal = Decimal("0")
    approximations: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def generated_media_count(self) -> int:
        """Total generated media items across kinds."""
        return self.generated_image_count + self.generated_video_count + self.generated_audio_count


def normalize(report: UsageReport, default_modality: str = Modality.TEXT.value) -> NormalizedUsage:
    """Normalize a provider usage report.

    A report without per-modality input details is attributed entirely to
    ``default_modality`` so input cost is never dropped. Missing counts
    become zero.

    Args:
        report: Raw provider usage report
        default_modality: Modality for the synthesized input entry

    Returns:
        NormalizedUsage with every field populated
    """
    aggregate_input = report.input_units or 0

    per_modality: List[Tuple[str, int]] = []
    if report.input_details:
        for detail in report.input_details:
            modality = detail.modality.value if isinstance(detail.modality, Modality) else str(detail.modality)
            per_modality.append((modality, detail.units or 0))
    else:
        per_modality.append((default_modality, aggregate_input))

    if report.input_units is not None:
        total_input = aggregate_input
    else:
        total_input = sum(units for _, units in per_modality)

    counts = {kind: 0 for kind in MediaKind}
    for media in report.generated_media:
        counts[media.kind] += 1

    approximations: List[str] = []
    duration = report.output_duration_seconds
    if duration is None:
        duration = Decimal("0")
        if counts[MediaKind.VIDEO]:
            duration = Decimal(DEFAULT_VIDEO_DURATION_SECONDS * counts[MediaKind.VIDEO])
            approximations.append(
                f"Video duration not reported; assumed {DEFAULT_VIDEO_DURATION_SECONDS}s per video"
            )
            logger.info("No video duration reported, assuming %ss per video", DEFAULT_VIDEO_DURATION_SECONDS)

    return NormalizedUsage(
        per_modality_input_units=tuple(per_modality),
        total_input_units=total_input,
        text_output_units=report.text_output_units or 0,
        thinking_output_units=report.thinking_output_units or 0,
        audio_output_units=report.audio_output_units or 0,
        image_output_units=report.image_output_units or 0,
        generated_image_count=counts[MediaKind.IMAGE],
        generated_video_count=counts[MediaKind.VIDEO],
        generated_audio_count=counts[MediaKind.AUDIO],
        output_duration_seconds=duration,
        approximations=tuple(approximations),
    )


def _optional_int(value: Any, name: str) -> Optional[int]:
    """Parse an optional count; fractional and negative values are rejected."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"'{name}' must be a number")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"'{name}' must be a number")
    if not number.is_finite() or number != number.to_integral_value():
        raise ValueError(f"'{name}' must be a whole number")
    if number < 0:
        raise ValueError(f"'{name}' cannot be negative")
    return int(number)
