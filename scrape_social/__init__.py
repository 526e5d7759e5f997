"""
Social profile extraction (Facebook, Instagram, LinkedIn).
"""

from scrape_social.social_scraper import (
    scrape_facebook_followers,
    scrape_instagram_followers,
    scrape_linkedin_data,
)

__all__ = [
    "scrape_facebook_followers",
    "scrape_instagram_followers",
    "scrape_linkedin_data",
]
