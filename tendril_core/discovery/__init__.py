"""Directory crawling that feeds modules into a container."""

from tendril_core.config import CrawlSpec

from .crawler import DiscoveredService, ServiceCrawler
from .errors import DiscoveryError
from .loader import load_service_module, module_name_for

__all__ = [
    "CrawlSpec",
    "DiscoveredService",
    "DiscoveryError",
    "ServiceCrawler",
    "load_service_module",
    "module_name_for",
]
