"""
Pricing catalog and tier selection.

Holds per-model rate tables for text, audio, video and image inputs, and
picks the standard or high-volume tier for a request.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterator, Mapping, Optional, Tuple


class Provider(Enum):
    """AI providers with catalog entries."""
    GOOGLE = "GOOGLE"
    OPENAI = "OPENAI"
    ANTHROPIC = "ANTHROPIC"


class Modality(str, Enum):
    """Input/output content categories with distinct rates."""
    TEXT = "TEXT"
    AUDIO = "AUDIO"
    VIDEO = "VIDEO"
    IMAGE = "IMAGE"


class OutputUnit(Enum):
    """Billing denomination for output."""
    TOKENS = "TOKENS"
    SECONDS = "SECONDS"
    COUNT = "COUNT"


class ImageBilling(Enum):
    """How generated images are billed for a model."""
    TOKENS_AT_OUTPUT_RATE = "tokens_at_output_rate"  # plain output tokens
    TOKEN_RATE = "token_rate"  # dedicated per-1M image token rate
    FIXED = "fixed"  # flat price per generated image


class PricingNotFoundError(ValueError):
    """Raised when a model has no catalog entry."""

    def __init__(self, model: str):
        super().__init__(f"Pricing not found for model: {model}")
        self.model = model


@dataclass(frozen=True)
class RateTable:
    """Rates for one tier. Input and token output rates are per 1M units."""
    input: Mapping[str, Decimal]
    output: Decimal
    output_unit: OutputUnit = OutputUnit.TOKENS
    output_image_rate: Optional[Decimal] = None
    audio_output_rate: Optional[Decimal] = None

    def input_rate(self, modality: str) -> Decimal:
        """Rate for an input modality, falling back to the TEXT rate, then zero."""
        rate = self.input.get(modality)
        if rate is None:
            rate = self.input.get(Modality.TEXT.value)
        return rate if rate is not None else Decimal("0")

    def has_input_rate(self, modality: str) -> bool:
        return modality in self.input


@dataclass(frozen=True)
class PricingEntry:
    """Catalog entry for a single model."""
    provider: Provider
    standard: RateTable
    label: str = ""
    high: Optional[RateTable] = None
    breakpoint: Optional[int] = None
    fixed_output_per_image: Optional[Decimal] = None

    def __post_init__(self):
        """Validate tier and image billing consistency."""
        if self.high is not None and self.breakpoint is None:
            raise ValueError("high tier requires a breakpoint")
        if self.breakpoint is not None and self.breakpoint < 0:
            raise ValueError("breakpoint cannot be negative")
        tiers = [tier for tier in (self.standard, self.high) if tier is not None]
        image_rated = [tier.output_image_rate is not None for tier in tiers]
        if self.fixed_output_per_image is not None and any(image_rated):
            raise ValueError(
                "fixed_output_per_image and output_image_rate are mutually exclusive"
            )
        if any(image_rated) and not all(image_rated):
            raise ValueError("output_image_rate must be set on every tier or none")

    @property
    def image_billing(self) -> ImageBilling:
        """Image billing policy shared by every tier of the entry."""
        if self.fixed_output_per_image is not None:
            return ImageBilling.FIXED
        if any(tier is not None and tier.output_image_rate is not None for tier in (self.standard, self.high)):
            return ImageBilling.TOKEN_RATE
        return ImageBilling.TOKENS_AT_OUTPUT_RATE


@dataclass(frozen=True)
class PricingCatalog:
    """Read-only mapping from model identifier to pricing entry."""
    entries: Dict[str, PricingEntry] = field(default_factory=dict)

    def get_pricing(self, model: str) -> PricingEntry:
        """Get pricing for a specific model.

        Args:
            model: Model identifier

        Returns:
            PricingEntry for the model

        Raises:
            PricingNotFoundError: If model has no entry
        """
        if model not in self.entries:
            raise PricingNotFoundError(model)
        return self.entries[model]

    def __contains__(self, model: object) -> bool:
        return model in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def items(self):
        return self.entries.items()


def select_tier(entry: PricingEntry, total_input_units: int) -> Tuple[RateTable, bool]:
    """Pick the rate table for a request.

    The high tier applies only when the input strictly exceeds the
    breakpoint and the entry defines a high tier.

    Args:
        entry: Pricing entry for the model
        total_input_units: Aggregate input units of the request

    Returns:
        Tuple of (rate table, is_high_tier)
    """
    if entry.breakpoint is None:
        return entry.standard, False
    if entry.high is not None and total_input_units > entry.breakpoint:
        return entry.high, True
    return entry.standard, False


def _rates(text: str, audio: str, video: str, image: str) -> Dict[str, Decimal]:
    return {
        Modality.TEXT.value: Decimal(text),
        Modality.AUDIO.value: Decimal(audio),
        Modality.VIDEO.value: Decimal(video),
        Modality.IMAGE.value: Decimal(image),
    }


_FREE_INPUT = _rates("0", "0", "0", "0")


def _flat(rate: str) -> Dict[str, Decimal]:
    return _rates(rate, rate, rate, rate)


# Built-in catalog, USD per 1M tokens unless the output unit says otherwise
PRICING_CATALOG = PricingCatalog({
    # Gemini 3
    "gemini-3-flash-preview": PricingEntry(
        provider=Provider.GOOGLE,
        label="Gemini 3 Flash (Preview)",
        standard=RateTable(input=_rates("0.50", "1.00", "0.50", "0.50"), output=Decimal("3.00")),
    ),
    "gemini-3-pro-preview": PricingEntry(
        provider=Provider.GOOGLE,
        label="Gemini 3 Pro (Preview)",
        breakpoint=200000,
        standard=RateTable(input=_flat("2.00"), output=Decimal("12.00")),
        high=RateTable(input=_flat("4.00"), output=Decimal("18.00")),
    ),
    "gemini-3-pro-image-preview": PricingEntry(
        provider=Provider.GOOGLE,
        label="Gemini 3 Pro Image (Preview)",
        standard=RateTable(
            input=_flat("2.00"),
            output=Decimal("12.00"),
            output_image_rate=Decimal("120.00"),
        ),
    ),
    # Gemini 2.5
    "gemini-2.5-pro": PricingEntry(
        provider=Provider.GOOGLE,
        label="Gemini 2.5 Pro",
        breakpoint=200000,
        standard=RateTable(input=_flat("1.25"), output=Decimal("10.00")),
        high=RateTable(input=_flat("2.50"), output=Decimal("15.00")),
    ),
    "gemini-2.5-flash": PricingEntry(
        provider=Provider.GOOGLE,
        label="Gemini 2.5 Flash",
        standard=RateTable(input=_rates("0.30", "1.00", "0.30", "0.30"), output=Decimal("2.50")),
    ),
    "gemini-2.5-flash-lite": PricingEntry(
        provider=Provider.GOOGLE,
        label="Gemini 2.5 Flash Lite",
        standard=RateTable(input=_rates("0.10", "0.30", "0.10", "0.10"), output=Decimal("0.40")),
    ),
    "gemini-2.5-flash-image": PricingEntry(
        provider=Provider.GOOGLE,
        label="Gemini 2.5 Flash Image",
        standard=RateTable(input=_rates("0.30", "1.00", "0.30", "0.30"), output=Decimal("0.30")),
        fixed_output_per_image=Decimal("0.039"),
    ),
    "gemini-2.5-flash-native-audio-preview-12-2025": PricingEntry(
        provider=Provider.GOOGLE,
        label="Gemini 2.5 Flash Native Audio (Live)",
        standard=RateTable(
            input=_rates("0.50", "3.00", "3.00", "0.50"),
            output=Decimal("2.00"),
            audio_output_rate=Decimal("12.00"),
        ),
    ),
    "gemini-2.5-flash-preview-tts": PricingEntry(
        provider=Provider.GOOGLE,
        label="Gemini 2.5 Flash TTS",
        standard=RateTable(input=_rates("0.50", "1.00", "0.50", "0.50"), output=Decimal("10.00")),
    ),
    "gemini-2.5-pro-preview-tts": PricingEntry(
        provider=Provider.GOOGLE,
        label="Gemini 2.5 Pro TTS",
        standard=RateTable(input=_flat("1.00"), output=Decimal("20.00")),
    ),
    # Gemini 2.0
    "gemini-2.0-flash": PricingEntry(
        provider=Provider.GOOGLE,
        label="Gemini 2.0 Flash",
        standard=RateTable(input=_rates("0.10", "0.70", "0.10", "0.10"), output=Decimal("0.40")),
    ),
    "gemini-2.0-flash-lite": PricingEntry(
        provider=Provider.GOOGLE,
        label="Gemini 2.0 Flash Lite",
        standard=RateTable(input=_rates("0.075", "0.30", "0.075", "0.075"), output=Decimal("0.30")),
    ),
    # Video (Veo), USD per generated second
    "veo-3.1-generate-preview": PricingEntry(
        provider=Provider.GOOGLE,
        label="Veo 3.1 Standard (Video)",
        standard=RateTable(input=_FREE_INPUT, output=Decimal("0.40"), output_unit=OutputUnit.SECONDS),
    ),
    "veo-3.1-fast-generate-preview": PricingEntry(
        provider=Provider.GOOGLE,
        label="Veo 3.1 Fast (Video)",
        standard=RateTable(input=_FREE_INPUT, output=Decimal("0.15"), output_unit=OutputUnit.SECONDS),
    ),
    "veo-2.0-generate-001": PricingEntry(
        provider=Provider.GOOGLE,
        label="Veo 2.0 (Video)",
        standard=RateTable(input=_FREE_INPUT, output=Decimal("0.35"), output_unit=OutputUnit.SECONDS),
    ),
    # Image (Imagen), USD per generated image
    "imagen-4.0-fast-generate-001": PricingEntry(
        provider=Provider.GOOGLE,
        label="Imagen 4 Fast (Image)",
        standard=RateTable(input=_FREE_INPUT, output=Decimal("0.02"), output_unit=OutputUnit.COUNT),
    ),
    "imagen-4.0-generate-001": PricingEntry(
        provider=Provider.GOOGLE,
        label="Imagen 4 Standard (Image)",
        standard=RateTable(input=_FREE_INPUT, output=Decimal("0.04"), output_unit=OutputUnit.COUNT),
    ),
    "imagen-4.0-ultra-generate-001": PricingEntry(
        provider=Provider.GOOGLE,
        label="Imagen 4 Ultra (Image)",
        standard=RateTable(input=_FREE_INPUT, output=Decimal("0.06"), output_unit=OutputUnit.COUNT),
    ),
    "imagen-3.0-generate-002": PricingEntry(
        provider=Provider.GOOGLE,
        label="Imagen 3 (Image)",
        standard=RateTable(input=_FREE_INPUT, output=Decimal("0.03"), output_unit=OutputUnit.COUNT),
    ),
    # Embeddings
    "gemini-embedding-001": PricingEntry(
        provider=Provider.GOOGLE,
        label="Gemini Embedding 001",
        standard=RateTable(input=_flat("0.15"), output=Decimal("0")),
    ),
    # OpenAI
    "gpt-4o": PricingEntry(
        provider=Provider.OPENAI,
        label="GPT-4o",
        standard=RateTable(input=_flat("5.00"), output=Decimal("15.00")),
    ),
})
