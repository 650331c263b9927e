"""
Unit tests for cost calculation.

Tests input line items and each output billing mode.
"""

from decimal import Decimal

import pytest

from ai_cost_lens.core.calculator import PLACEHOLDER_IMAGE_TOKENS, compute_cost, per_million
from ai_cost_lens.core.pricing import ImageBilling, OutputUnit, RateTable
from ai_cost_lens.core.token_counter import NormalizedUsage


def _usage(**kwargs) -> NormalizedUsage:
    kwargs.setdefault("per_modality_input_units", (("TEXT", 0),))
    kwargs.setdefault("total_input_units", sum(u for _, u in kwargs["per_modality_input_units"]))
    return NormalizedUsage(**kwargs)


TOKEN_TABLE = RateTable(
    input={"TEXT": Decimal("0.30"), "AUDIO": Decimal("1.00"), "VIDEO": Decimal("0.30"), "IMAGE": Decimal("0.30")},
    output=Decimal("2.50"),
)


class TestInputCost:
    """Test per-modality input pricing."""

    def test_line_items_preserve_order(self):
        usage = _usage(per_modality_input_units=(("AUDIO", 1_000_000), ("TEXT", 2_000_000)))
        result = compute_cost(TOKEN_TABLE, usage)
        assert [item.modality for item in result.input_breakdown] == ["AUDIO", "TEXT"]
        assert result.input_breakdown[0].cost == Decimal("1.00")
        assert result.input_breakdown[1].cost == Decimal("0.60")
        assert result.input_cost == Decimal("1.60")

    def test_input_cost_equals_sum_of_line_items(self):
        usage = _usage(per_modality_input_units=(("TEXT", 1234), ("IMAGE", 5678), ("AUDIO", 91011)))
        result = compute_cost(TOKEN_TABLE, usage)
        assert result.input_cost == sum(item.cost for item in result.input_breakdown)

    def test_unknown_modality_priced_as_text_keeps_label(self):
        """Unrecognized modalities degrade to the TEXT rate."""
        usage = _usage(per_modality_input_units=(("DOCUMENT", 1_000_000),))
        result = compute_cost(TOKEN_TABLE, usage)
        item = result.input_breakdown[0]
        assert item.modality == "DOCUMENT"
        assert item.unit_rate == Decimal("0.30")
        assert item.cost == Decimal("0.30")

    def test_line_item_cost_formula(self):
        usage = _usage(per_modality_input_units=(("TEXT", 333),))
        item = compute_cost(TOKEN_TABLE, usage).input_breakdown[0]
        assert item.cost == (Decimal(333) / Decimal(1_000_000)) * Decimal("0.30")
        assert item.unit == OutputUnit.TOKENS


class TestTokenOutput:
    """Test token-denominated output pricing."""

    def test_text_only_reduces_to_simple_rate(self):
        usage = _usage(text_output_units=400_000)
        result = compute_cost(TOKEN_TABLE, usage)
        assert result.output_cost == per_million(400_000, Decimal("2.50"))
        assert result.output_cost == Decimal("1.00")

    def test_thinking_billed_at_output_rate(self):
        usage = _usage(text_output_units=100_000, thinking_output_units=300_000)
        result = compute_cost(TOKEN_TABLE, usage)
        assert result.output_cost == Decimal("1.00")
        assert result.output_units == 400_000

    def test_audio_output_at_output_rate_without_override(self):
        usage = _usage(text_output_units=500_000, audio_output_units=500_000)
        assert compute_cost(TOKEN_TABLE, usage).output_cost == Decimal("2.50")

    def test_audio_output_override_rate(self):
        """Native audio output is billed apart from text and thinking."""
        table = RateTable(
            input={"TEXT": Decimal("0.50")},
            output=Decimal("2.00"),
            audio_output_rate=Decimal("12.00"),
        )
        usage = _usage(text_output_units=250_000, thinking_output_units=250_000, audio_output_units=1_000_000)
        result = compute_cost(table, usage)
        # (500k / 1M) * 2.00 + (1M / 1M) * 12.00
        assert result.output_cost == Decimal("13.00")
        assert result.output_units == 1_500_000

    def test_image_tokens_at_dedicated_rate(self):
        table = RateTable(input={"TEXT": Decimal("2")}, output=Decimal("12"), output_image_rate=Decimal("120"))
        usage = _usage(image_output_units=2000, generated_image_count=1)
        result = compute_cost(table, usage, ImageBilling.TOKEN_RATE)
        assert result.output_cost == per_million(2000, Decimal("120"))
        assert result.approximations == ()

    def test_image_placeholder_when_tokens_missing(self):
        """Missing image token counts use a labeled placeholder."""
        table = RateTable(input={"TEXT": Decimal("2")}, output=Decimal("12"), output_image_rate=Decimal("120"))
        usage = _usage(generated_image_count=1)
        result = compute_cost(table, usage, ImageBilling.TOKEN_RATE)
        assert result.output_cost == per_million(PLACEHOLDER_IMAGE_TOKENS, Decimal("120"))
        assert result.output_units == PLACEHOLDER_IMAGE_TOKENS
        assert len(result.approximations) == 1

    def test_billing_policy_selects_image_rate(self):
        """Image tokens follow the policy, not the presence of a rate."""
        table = RateTable(input={"TEXT": Decimal("2")}, output=Decimal("12"), output_image_rate=Decimal("120"))
        usage = _usage(image_output_units=1_000_000)
        assert compute_cost(table, usage, ImageBilling.TOKENS_AT_OUTPUT_RATE).output_cost == Decimal("12")
        assert compute_cost(table, usage, ImageBilling.TOKEN_RATE).output_cost == Decimal("120")

    def test_fixed_per_image_excludes_image_tokens(self):
        """Flat per-image pricing never also charges image tokens."""
        table = RateTable(input={"TEXT": Decimal("0.30")}, output=Decimal("0.30"))
        usage = _usage(text_output_units=0, image_output_units=1290, generated_image_count=2)
        result = compute_cost(table, usage, ImageBilling.FIXED, Decimal("0.039"))
        assert result.output_cost == Decimal("0.078")
        assert result.output_units == 1290

    def test_fixed_per_image_without_images_adds_nothing(self):
        table = RateTable(input={"TEXT": Decimal("0.30")}, output=Decimal("0.30"))
        usage = _usage(text_output_units=1_000_000)
        result = compute_cost(table, usage, ImageBilling.FIXED, Decimal("0.039"))
        assert result.output_cost == Decimal("0.30")


class TestDurationAndCountOutput:
    """Test per-second and per-item output pricing."""

    @pytest.mark.parametrize("seconds", ["0", "5", "7.5"])
    def test_seconds_output_is_linear(self, seconds):
        table = RateTable(input={}, output=Decimal("0.40"), output_unit=OutputUnit.SECONDS)
        usage = _usage(output_duration_seconds=Decimal(seconds))
        result = compute_cost(table, usage)
        assert result.output_cost == Decimal(seconds) * Decimal("0.40")
        assert result.output_units == Decimal(seconds)

    @pytest.mark.parametrize("count", [0, 1, 4])
    def test_count_output_is_linear(self, count):
        table = RateTable(input={}, output=Decimal("0.04"), output_unit=OutputUnit.COUNT)
        usage = _usage(generated_image_count=count)
        result = compute_cost(table, usage)
        assert result.output_cost == count * Decimal("0.04")
        assert result.output_units == count

    def test_zero_rate_inputs_for_media_models(self):
        table = RateTable(input={"TEXT": Decimal("0")}, output=Decimal("0.04"), output_unit=OutputUnit.COUNT)
        usage = _usage(per_modality_input_units=(("TEXT", 50),), generated_image_count=1)
        result = compute_cost(table, usage)
        assert result.input_cost == Decimal("0")
        assert result.output_cost == Decimal("0.04")
