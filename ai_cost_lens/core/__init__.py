"""
Core modules for AI Cost Lens.

This package contains the cost-estimation engine: pricing catalog, tier
selection, usage normalization, cost calculation and estimate aggregation.
"""
