"""Configuration constants for the field report renderer."""
from __future__ import annotations

import os

# Maximum number of values listed per field (the rest are summarized)
MAX_VALUES_PER_FIELD: int = int(os.getenv("REPORT_MAX_VALUES_PER_FIELD", "8"))

# Width, in characters, of a 100% bar
BAR_WIDTH: int = int(os.getenv("REPORT_BAR_WIDTH", "20"))

# Character used to draw distribution bars
BAR_CHAR: str = os.getenv("REPORT_BAR_CHAR", "█")
