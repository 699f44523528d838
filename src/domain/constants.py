"""Domain business rules and constants."""

from typing import Final

# Business Rules - Core domain constraints
MIN_QUANTITY: Final = 1
DEFAULT_PER_PAGE: Final = 20
MAX_PER_PAGE: Final = 100
LEASE_LIST_LIMIT: Final = 100

# Accepted date/time text formats, in the order they are tried
DATE_INPUT_FORMATS: Final = (
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
)
DATE_OUTPUT_FORMAT: Final = "%Y-%m-%dT%H:%M"
TIMESTAMP_OUTPUT_FORMAT: Final = "%Y-%m-%d %H:%M:%S"
DATE_FORMATS_DESCRIPTION: Final = "YYYY-MM-DDTHH:MM, YYYY-MM-DD HH:MM:SS, or YYYY-MM-DD"
