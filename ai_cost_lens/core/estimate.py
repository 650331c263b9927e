"""
Estimate aggregation and the estimation pipeline.

Packages calculator output into an immutable, serializable CostEstimate.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence, Tuple

from .calculator import ModalityLineItem, compute_cost
from .pricing import PRICING_CATALOG, Modality, OutputUnit, PricingCatalog, select_tier
from .token_counter import UsageReport, normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CostEstimate:
    """Itemized cost of a single model call.

    total_cost is always input_cost + output_cost, and input_cost is the
    sum of the input line items.
    """
    input_cost: Decimal
    output_cost: Decimal
    total_cost: Decimal
    input_units: int
    output_units: Decimal  # tokens, seconds or items depending on output_unit
    output_unit: OutputUnit
    thinking_units: int
    text_units: int
    input_breakdown: Tuple[ModalityLineItem, ...]
    output_rate: Decimal
    is_high_tier: bool
    approximations: Tuple[str, ...] = ()

    @property
    def is_approximate(self) -> bool:
        """True when a placeholder stood in for missing usage data."""
        return bool(self.approximations)

    @property
    def text_output_cost(self) -> Decimal:
        """Share of output cost attributable to text units."""
        return self._output_share(self.text_units)

    @property
    def thinking_output_cost(self) -> Decimal:
        """Share of output cost attributable to thinking units."""
        return self._output_share(self.thinking_units)

    def _output_share(self, units: int) -> Decimal:
        if not self.output_units:
            return Decimal("0")
        return Decimal(units) / Decimal(self.output_units) * self.output_cost

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible types; decimals become strings."""
        return {
            "input_cost": str(self.input_cost),
            "output_cost": str(self.output_cost),
            "total_cost": str(self.total_cost),
            "input_units": self.input_units,
            "output_units": str(self.output_units),
            "output_unit": self.output_unit.value,
            "thinking_units": self.thinking_units,
            "text_units": self.text_units,
            "input_breakdown": [item.to_dict() for item in self.input_breakdown],
            "output_rate": str(self.output_rate),
            "is_high_tier": self.is_high_tier,
            "approximations": list(self.approximations),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CostEstimate":
        return cls(
            input_cost=Decimal(data["input_cost"]),
            output_cost=Decimal(data["output_cost"]),
            total_cost=Decimal(data["total_cost"]),
            input_units=int(data["input_units"]),
            output_units=Decimal(data["output_units"]),
            output_unit=OutputUnit(data["output_unit"]),
            thinking_units=int(data["thinking_units"]),
            text_units=int(data["text_units"]),
            input_breakdown=tuple(
                ModalityLineItem.from_dict(item) for item in data.get("input_breakdown", [])
            ),
            output_rate=Decimal(data["output_rate"]),
            is_high_tier=bool(data["is_high_tier"]),
            approximations=tuple(data.get("approximations", [])),
        )


def aggregate(
    input_cost: Decimal,
    input_breakdown: Sequence[ModalityLineItem],
    output_cost: Decimal,
    text_units: int,
    thinking_units: int,
    output_units: Decimal,
    output_unit: OutputUnit,
    output_rate: Decimal,
    is_high_tier: bool,
    input_units: Optional[int] = None,
    approximations: Sequence[str] = (),
) -> CostEstimate:
    """Assemble a CostEstimate. No recomputation beyond the total."""
    if input_units is None:
        input_units = sum(item.units for item in input_breakdown)
    return CostEstimate(
        input_cost=input_cost,
        output_cost=output_cost,
        total_cost=input_cost + output_cost,
        input_units=input_units,
        output_units=output_units,
        output_unit=output_unit,
        thinking_units=thinking_units,
        text_units=text_units,
        input_breakdown=tuple(input_breakdown),
        output_rate=output_rate,
        is_high_tier=is_high_tier,
        approximations=tuple(approximations),
    )


def estimate_cost(
    model: str,
    report: UsageReport,
    catalog: Optional[PricingCatalog] = None,
    default_modality: str = Modality.TEXT.value,
) -> CostEstimate:
    """Estimate the cost of a model call from its usage report.

    Args:
        model: Model identifier
        report: Provider usage report
        catalog: Pricing catalog (defaults to the built-in one)
        default_modality: Modality for reports without input details

    Returns:
        Itemized CostEstimate

    Raises:
        PricingNotFoundError: If the model has no catalog entry
    """
    entry = (catalog if catalog is not None else PRICING_CATALOG).get_pricing(model)

    usage = normalize(report, default_modality)
    rate_table, is_high_tier = select_tier(entry, usage.total_input_units)
    breakdown = compute_cost(rate_table, usage, entry.image_billing, entry.fixed_output_per_image)

    estimate = aggregate(
        input_cost=breakdown.input_cost,
        input_breakdown=breakdown.input_breakdown,
        output_cost=breakdown.output_cost,
        text_units=usage.text_output_units,
        thinking_units=usage.thinking_output_units,
        output_units=breakdown.output_units,
        output_unit=rate_table.output_unit,
        output_rate=rate_table.output,
        is_high_tier=is_high_tier,
        input_units=usage.total_input_units,
        approximations=breakdown.approximations,
    )
    logger.debug(
        "Estimated %s: input=%s output=%s total=%s high_tier=%s",
        model, estimate.input_cost, estimate.output_cost, estimate.total_cost, is_high_tier,
    )
    return estimate
