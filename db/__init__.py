"""
Database module for lead-enricher.

This module handles:
- SQLAlchemy models
- The Result Sink (upsert of enrichment results)
- Refresh scheduling queries
"""

from db.models import Base, EnrichedLead, canonicalize_url, domain_from_url
from db.lead_store import LeadStore, merge_result

__version__ = "0.1.0"

__all__ = [
    "Base",
    "EnrichedLead",
    "canonicalize_url",
    "domain_from_url",
    "LeadStore",
    "merge_result",
]
