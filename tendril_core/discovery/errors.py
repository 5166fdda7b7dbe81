"""Discovery-specific error types."""

from tendril_core.errors import TendrilError


class DiscoveryError(TendrilError):
    """Raised when a service directory cannot be crawled or imported."""
