"""
Runner module for lead-enricher.

This module contains:
- The lead-enrich command line entry point
- Logging setup shared by every scraper module
"""

from runner.logging_setup import LeadLogger, get_logger, lead_logger, setup_logging

__version__ = "0.1.0"

__all__ = [
    "LeadLogger",
    "get_logger",
    "lead_logger",
    "setup_logging",
]
