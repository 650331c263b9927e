"""
Thinking configuration.

A request either has no thinking constraint, an explicit token budget, or a
qualitative level that maps to a fixed budget per model family.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union


class ThinkingLevel(Enum):
    """Qualitative thinking levels."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class ThinkingMode(Enum):
    """Tag of a thinking directive."""
    NONE = "NONE"
    BUDGET = "BUDGET"
    LEVEL = "LEVEL"


@dataclass(frozen=True)
class NoThinking:
    """No thinking budget constraint."""
    mode = ThinkingMode.NONE


@dataclass(frozen=True)
class ThinkingBudget:
    """Caller-supplied thinking token ceiling."""
    tokens: int
    mode = ThinkingMode.BUDGET

    def __post_init__(self):
        if self.tokens < 0:
            raise ValueError("thinking budget cannot be negative")


@dataclass(frozen=True)
class ThinkingLevelDirective:
    """Qualitative level resolved to a budget per model family."""
    level: ThinkingLevel
    mode = ThinkingMode.LEVEL


ThinkingDirective = Union[NoThinking, ThinkingBudget, ThinkingLevelDirective]

_LEVEL_BUDGETS = {
    ThinkingLevel.LOW: 4096,
    ThinkingLevel.MEDIUM: 12288,
}
_HIGH_BUDGET_PRO = 32768
_HIGH_BUDGET_DEFAULT = 24576

# Model families that accept a thinking budget
_THINKING_FAMILIES = ("gemini-3", "gemini-2.5", "gemini-2.0")


def budget_for_level(level: ThinkingLevel, is_pro_class: bool) -> int:
    """Map a thinking level to its token budget."""
    if level == ThinkingLevel.HIGH:
        return _HIGH_BUDGET_PRO if is_pro_class else _HIGH_BUDGET_DEFAULT
    return _LEVEL_BUDGETS[level]


def is_pro_class_model(model: str) -> bool:
    return "pro" in model


def supports_thinking(model: str) -> bool:
    return any(family in model for family in _THINKING_FAMILIES)


def resolve_thinking_budget(directive: ThinkingDirective, model: str) -> Optional[int]:
    """Derive the thinking token budget for a request.

    Returns:
        Token budget, or None when the request carries no constraint

    Raises:
        TypeError: If directive is not a known variant
    """
    if isinstance(directive, NoThinking):
        return None
    if isinstance(directive, ThinkingBudget):
        return directive.tokens
    if isinstance(directive, ThinkingLevelDirective):
        return budget_for_level(directive.level, is_pro_class_model(model))
    raise TypeError(f"Unknown thinking directive: {directive!r}")


def directive_to_dict(directive: ThinkingDirective) -> Dict[str, Any]:
    if isinstance(directive, ThinkingBudget):
        return {"mode": ThinkingMode.BUDGET.value, "budget": directive.tokens}
    if isinstance(directive, ThinkingLevelDirective):
        return {"mode": ThinkingMode.LEVEL.value, "level": directive.level.value}
    if isinstance(directive, NoThinking):
        return {"mode": ThinkingMode.NONE.value}
    raise TypeError(f"Unknown thinking directive: {directive!r}")


def directive_from_dict(data: Optional[Dict[str, Any]]) -> ThinkingDirective:
    """Parse a serialized directive.

    Raises:
        ValueError: If the mode or its payload is invalid
    """
    if not data:
        return NoThinking()
    try:
        mode = ThinkingMode(data.get("mode", ThinkingMode.NONE.value))
    except ValueError:
        raise ValueError(f"Unknown thinking mode: {data.get('mode')}")

    if mode == ThinkingMode.BUDGET:
        if "budget" not in data:
            raise ValueError("BUDGET thinking mode requires 'budget'")
        return ThinkingBudget(int(data["budget"]))
    if mode == ThinkingMode.LEVEL:
        try:
            return ThinkingLevelDirective(ThinkingLevel(str(data.get("level", "")).upper()))
        except ValueError:
            valid = [level.value for level in ThinkingLevel]
            raise ValueError(f"thinking level must be one of: {valid}")
    return NoThinking()
