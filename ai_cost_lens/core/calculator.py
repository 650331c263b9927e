"""
Cost calculation.

Applies a tier's rates to normalized usage. Output pricing follows the
tier's output unit; per-model quirks are read from the rate table and the
entry's image billing policy rather than branched on model names.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from .pricing import ImageBilling, OutputUnit, RateTable
from .token_counter import NormalizedUsage

logger = logging.getLogger(__name__)

PER_MILLION = Decimal("1000000")

# Stand-in token count for a generated image when the provider omits it
PLACEHOLDER_IMAGE_TOKENS = 1120


@dataclass(frozen=True)
class ModalityLineItem:
    """Priced input units for one modality."""
    modality: str
    units: int
    unit_rate: Decimal
    cost: Decimal
    unit: OutputUnit = OutputUnit.TOKENS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "modality": self.modality,
            "units": self.units,
            "unit_rate": str(self.unit_rate),
            "cost": str(self.cost),
            "unit": self.unit.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModalityLineItem":
        return cls(
            modality=data["modality"],
            units=int(data["units"]),
            unit_rate=Decimal(data["unit_rate"]),
            cost=Decimal(data["cost"]),
            unit=OutputUnit(data.get("unit", OutputUnit.TOKENS.value)),
        )


@dataclass(frozen=True)
class CostBreakdown:
    """Raw calculator output before aggregation."""
    input_cost: Decimal
    input_breakdown: Tuple[ModalityLineItem, ...]
    output_cost: Decimal
    output_units: Decimal
    approximations: Tuple[str, ...] = ()


def per_million(units, rate: Decimal) -> Decimal:
    """Cost of ``units`` at a per-1M rate."""
    return (Decimal(units) / PER_MILLION) * rate


def compute_input_cost(
    rate_table: RateTable,
    usage: NormalizedUsage,
) -> Tuple[Decimal, Tuple[ModalityLineItem, ...]]:
    """Price each input modality, preserving report order.

    Unrecognized modalities are priced at the TEXT rate but keep their own
    label in the breakdown.
    """
    input_cost = Decimal("0")
    items: List[ModalityLineItem] = []
    for modality, units in usage.per_modality_input_units:
        if not rate_table.has_input_rate(modality):
            logger.warning("No input rate for modality %s, using TEXT rate", modality)
        rate = rate_table.input_rate(modality)
        cost = per_million(units, rate)
        input_cost += cost
        items.append(ModalityLineItem(modality=modality, units=units, unit_rate=rate, cost=cost))
    return input_cost, tuple(items)


def compute_cost(
    rate_table: RateTable,
    usage: NormalizedUsage,
    image_billing: ImageBilling = ImageBilling.TOKENS_AT_OUTPUT_RATE,
    fixed_output_per_image: Optional[Decimal] = None,
) -> CostBreakdown:
    """Calculate input and output cost for normalized usage.

    Never raises for missing rates; absent rates count as zero.

    Args:
        rate_table: Selected tier
        usage: Normalized usage
        image_billing: Image billing policy of the model
        fixed_output_per_image: Flat price per generated image under
            FIXED billing

    Returns:
        CostBreakdown with ordered input line items
    """
    input_cost, items = compute_input_cost(rate_table, usage)
    approximations = list(usage.approximations)
    output_rate = rate_table.output if rate_table.output is not None else Decimal("0")

    if rate_table.output_unit == OutputUnit.SECONDS:
        output_units = Decimal(usage.output_duration_seconds)
        output_cost = output_units * output_rate
    elif rate_table.output_unit == OutputUnit.COUNT:
        count = usage.generated_image_count or usage.generated_media_count
        output_units = Decimal(count)
        output_cost = output_units * output_rate
    else:
        output_cost, output_units = _token_output_cost(
            rate_table, usage, output_rate, image_billing, approximations
        )

    if image_billing == ImageBilling.FIXED and usage.generated_image_count:
        output_cost += (fixed_output_per_image or Decimal("0")) * usage.generated_image_count

    return CostBreakdown(
        input_cost=input_cost,
        input_breakdown=items,
        output_cost=output_cost,
        output_units=output_units,
        approximations=tuple(approximations),
    )


def _token_output_cost(
    rate_table: RateTable,
    usage: NormalizedUsage,
    output_rate: Decimal,
    image_billing: ImageBilling,
    approximations: List[str],
) -> Tuple[Decimal, Decimal]:
    billable = usage.text_output_units + usage.thinking_output_units
    extra = Decimal("0")

    if rate_table.audio_output_rate is None:
        billable += usage.audio_output_units
    else:
        extra += per_million(usage.audio_output_units, rate_table.audio_output_rate)

    # Under FIXED billing image tokens are reported but not billed
    image_units = usage.image_output_units
    if image_billing == ImageBilling.TOKENS_AT_OUTPUT_RATE:
        billable += image_units
    elif image_billing == ImageBilling.TOKEN_RATE:
        if image_units == 0 and usage.generated_image_count:
            image_units = PLACEHOLDER_IMAGE_TOKENS * usage.generated_image_count
            approximations.append(
                f"Image output tokens not reported; estimated {PLACEHOLDER_IMAGE_TOKENS} tokens per image"
            )
            logger.info("Estimating %s image output tokens", image_units)
        image_rate = rate_table.output_image_rate or Decimal("0")
        extra += per_million(image_units, image_rate)

    output_units = Decimal(
        usage.text_output_units
        + usage.thinking_output_units
        + usage.audio_output_units
        + image_units
    )
    return per_million(billable, output_rate) + extra, output_units
