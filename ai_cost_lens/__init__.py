"""
AI Cost Lens.

Cost and token estimation for multi-modal generative-AI calls.
"""

__version__ = "0.1.0"
