"""Configuration constants for the field aggregation pipeline."""
from __future__ import annotations

import os

# Provenance assumed for distributions / values that do not carry one
DEFAULT_DATA_SOURCE: str = "ai_training_data"

# Sample size assumed for synthetic distributions with no known denominator
DEFAULT_TOTAL_REPORTS: int = 100

# user_id of the rows seeded from AI-generated samples
AI_FOUNDATION_USER_ID: str = os.getenv("WWFM_AI_FOUNDATION_USER_ID", "ai_foundation")

# Version tag written into generated metadata envelopes
MAPPING_VERSION: str = "field-generator-v3"

# Minimum number of human ratings for "high" / "medium" confidence
CONFIDENCE_HIGH_MIN: int = int(os.getenv("WWFM_CONFIDENCE_HIGH_MIN", "10"))
CONFIDENCE_MEDIUM_MIN: int = int(os.getenv("WWFM_CONFIDENCE_MEDIUM_MIN", "3"))

# Aggregation queue tuning
QUEUE_MAX_CONCURRENT: int = int(os.getenv("WWFM_QUEUE_MAX_CONCURRENT", "5"))
QUEUE_MAX_RETRIES: int = int(os.getenv("WWFM_QUEUE_MAX_RETRIES", "3"))
