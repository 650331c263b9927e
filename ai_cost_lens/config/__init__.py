"""
Configuration for AI Cost Lens.

Loads pricing catalogs from YAML files.
"""
