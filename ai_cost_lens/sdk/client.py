"""
Estimating client.

Routes a request to the right provider fetcher, prices the reported usage
and records the call in the session history.
"""

import logging
import uuid
from datetime import datetime
from typing import Dict, Optional, Sequence

from ..config.loader import get_catalog
from ..core.estimate import estimate_cost
from ..core.pricing import PricingCatalog, Provider
from ..core.thinking import NoThinking, ThinkingDirective
from ..storage.models import FileAttachment, HistoryEntry, ResponseData
from ..storage.repository import HistoryRepository

from .base import ProviderNotSupportedError, UsageFetcher

logger = logging.getLogger(__name__)


class CostLensClient:
    """Runs model calls and attaches a cost estimate to each.

    Fetchers are injectable so estimates can be produced from canned usage
    reports without any network access.
    """

    def __init__(
        self,
        catalog: Optional[PricingCatalog] = None,
        fetchers: Optional[Dict[Provider, UsageFetcher]] = None,
        history: Optional[HistoryRepository] = None,
    ):
        self.catalog = catalog if catalog is not None else get_catalog()
        self.fetchers: Dict[Provider, UsageFetcher] = dict(fetchers or {})
        self.history = history if history is not None else HistoryRepository()

    def fetcher_for(self, provider: Provider) -> UsageFetcher:
        """Get (or lazily create) the fetcher for a provider.

        Raises:
            ProviderNotSupportedError: If the provider has no implementation
        """
        if provider not in self.fetchers:
            if provider == Provider.GOOGLE:
                from .gemini_client import GeminiFetcher
                self.fetchers[provider] = GeminiFetcher()
            elif provider == Provider.OPENAI:
                from .openai_client import OpenAIFetcher
                self.fetchers[provider] = OpenAIFetcher()
            else:
                raise ProviderNotSupportedError(f"Unsupported provider: {provider.value}")
        return self.fetchers[provider]

    def run(
        self,
        model: str,
        prompt: str,
        attachments: Sequence[FileAttachment] = (),
        thinking: ThinkingDirective = NoThinking(),
        title: Optional[str] = None,
    ) -> HistoryEntry:
        """Call the model, estimate its cost and record a history entry.

        Args:
            model: Model identifier (must be in the catalog)
            prompt: Prompt text
            attachments: Files sent with the prompt
            thinking: Thinking directive for the request
            title: Optional label for the history entry

        Returns:
            The recorded HistoryEntry

        Raises:
            ValueError: If model is empty or nothing would be sent
            PricingNotFoundError: If the model has no catalog entry
            ProviderNotSupportedError: If the provider has no fetcher
        """
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")
        if not prompt.strip() and not attachments:
            raise ValueError("prompt or attachments are required")

        # Fail before any network call when pricing is unknown
        entry = self.catalog.get_pricing(model)
        fetcher = self.fetcher_for(entry.provider)

        result = fetcher.fetch_usage(model, prompt, list(attachments), thinking)
        estimate = estimate_cost(model, result.usage, self.catalog)

        record = HistoryEntry(
            id=str(uuid.uuid4()),
            timestamp=datetime.now(),
            provider=entry.provider,
            model=model,
            title=title,
            prompt=prompt,
            attachments=tuple(attachments),
            thinking=thinking,
            result=ResponseData(
                provider=entry.provider,
                estimate=estimate,
                usage=result.usage,
                text=result.text,
                media=result.media,
                request_config=result.request_config,
            ),
        )
        self.history.add(record)
        logger.info("%s call cost %s (%s)", model, estimate.total_cost, record.id)
        return record
