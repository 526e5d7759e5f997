"""
HTTP API clients used by the enrichment pipeline.
"""

from services.close_crm import CloseCrmClient
from services.pagespeed_client import PageSpeedClient

__all__ = [
    "CloseCrmClient",
    "PageSpeedClient",
]
