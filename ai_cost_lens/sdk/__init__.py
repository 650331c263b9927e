"""
SDK for AI Cost Lens.

Provides provider fetchers and the estimating client.
"""

from .base import ProviderNotSupportedError, ProviderResult, UsageFetcher
from .client import CostLensClient

__all__ = ["CostLensClient", "ProviderNotSupportedError", "ProviderResult", "UsageFetcher"]
