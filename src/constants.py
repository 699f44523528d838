"""Infrastructure and technical constants."""

from typing import Final

# Technical configuration constants
DEFAULT_PORT: Final = 8000
API_PREFIX: Final = "/api/v1"

# Caller identification headers
USER_ID_HEADER: Final = "X-User-Id"
USER_CAPABILITIES_HEADER: Final = "X-User-Capabilities"

# Capabilities granted to rental managers
MANAGE_REQUESTS_CAPABILITY: Final = "manage_rental_requests"
MANAGE_LEASES_CAPABILITY: Final = "manage_rental_leases"
