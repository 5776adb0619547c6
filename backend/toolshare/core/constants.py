"""Application-wide constants for the ToolShare platform."""

from __future__ import annotations

BRAND_NAME = "ToolShare"

# Pricing
SERVICE_FEE_RATE = "0.06"  # renter-side platform fee over the daily-rate subtotal
MONEY_QUANT = "0.01"

# Evidence uploads (1 MiB per file)
MAX_EVIDENCE_BYTES = 1024 * 1024

# Validation code alphabet omits 0/O and 1/I so codes survive being read aloud
VALIDATION_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"

# Text constraints
MAX_REASON_MESSAGE_LENGTH = 1000
MAX_DISPUTE_DESCRIPTION_LENGTH = 2000
MAX_REVIEW_COMMENT_LENGTH = 1000

# Query limits
DEFAULT_QUERY_LIMIT = 50
MAX_QUERY_LIMIT = 200

# Pickup hour format (24h)
PICKUP_HOUR_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
