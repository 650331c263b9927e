"""
Provider fetcher interface.

Fetchers perform the actual network call and report usage; the estimation
engine never depends on how or whether that call happens.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Sequence, Tuple

from ..core.thinking import ThinkingDirective
from ..core.token_counter import GeneratedMedia, UsageReport
from ..storage.models import FileAttachment


class ProviderNotSupportedError(RuntimeError):
    """Raised when a catalog provider has no fetcher implementation."""


@dataclass(frozen=True)
class ProviderResult:
    """What a provider call returned, reduced to what estimation needs."""
    usage: UsageReport
    text: Optional[str] = None
    request_config: Dict[str, Any] = field(default_factory=dict)

    @property
    def media(self) -> Tuple[GeneratedMedia, ...]:
        return self.usage.generated_media


class UsageFetcher(Protocol):
    """Narrow interface over a provider client."""

    def fetch_usage(
        self,
        model: str,
        prompt: str,
        attachments: Sequence[FileAttachment],
        thinking: ThinkingDirective,
    ) -> ProviderResult:
        ...
