"""
Configuration module for the Underwriting Scorer.

This module contains all configuration dictionaries for scoring and caching.
"""

from .scoring_config import SCORING_CONFIG, CACHE_CONFIG, DAYS_PER_YEAR

__all__ = [
    "SCORING_CONFIG",
    "CACHE_CONFIG",
    "DAYS_PER_YEAR",
]
