"""
Result Sink for enriched leads.

This module provides:
- Upserting one EnrichmentResult per call, keyed by canonical website
- Keeping earlier stage data when a refresh run fails that stage
- Per-stage refresh scheduling queries
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from db.models import Base, EnrichedLead, STAGE_DUE_COLUMNS, canonicalize_url, domain_from_url
from runner.logging_setup import get_logger
from scrape_lead.lead_models import STAGE_FIELDS, EnrichmentResult, LeadIdentity


# Load environment
load_dotenv()

# Initialize logger
logger = get_logger("lead_store")


def utc_naive_now() -> datetime:
    """Current UTC time without tzinfo (stored as-is by every backend)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def merge_result(previous: Optional[Dict[str, Any]], result: EnrichmentResult) -> Dict[str, Any]:
    """
    Merge a new result over the stored one.

    Fields of stages that did not succeed in the new run keep their stored
    values, so a failed refresh never erases earlier data.
    """
    data = result.to_dict()
    if not previous:
        return data

    succeeded = set(result.succeeded_stages)
    for stage, keys in STAGE_FIELDS.items():
        if stage in succeeded:
            continue
        for key in keys:
            if previous.get(key) not in (None, {}, []):
                data[key] = previous[key]
    return data


class LeadStore:
    """
    Stores enrichment results.

    Usage:
        store = LeadStore("sqlite:///leads.db")
        orchestrator = LeadEnrichmentOrchestrator(manager, result_sink=store.save_result)
    """

    def __init__(self, database_url: str = None, refresh_days: int = 30, engine: Engine = None):
        """
        Initialize store and create tables if needed.

        Args:
            database_url: SQLAlchemy URL (ignored when engine is given)
            refresh_days: Days until a succeeded stage is due again
            engine: Existing engine (tests pass an in-memory one)
        """
        if engine is None:
            database_url = database_url or os.getenv("DATABASE_URL", "sqlite:///leads.db")
            engine = create_engine(database_url, echo=False)
        self.engine = engine
        self.refresh_days = refresh_days
        self.session_factory = sessionmaker(bind=self.engine)
        Base.metadata.create_all(self.engine)

    def save_result(self, result: EnrichmentResult) -> EnrichedLead:
        """
        Upsert one enrichment result.

        Args:
            result: Completed EnrichmentResult

        Returns:
            The stored EnrichedLead (detached)
        """
        website = canonicalize_url(result.identity.url)
        now = utc_naive_now()
        due = now + timedelta(days=self.refresh_days)
        succeeded = set(result.succeeded_stages)

        with self.session_factory() as session:
            try:
                lead = session.execute(
                    select(EnrichedLead).where(EnrichedLead.website == website)
                ).scalar_one_or_none()

                if lead is None:
                    lead = EnrichedLead(
                        name=result.identity.name,
                        website=website,
                        domain=domain_from_url(website),
                    )
                    session.add(lead)
                    action = "Inserted"
                else:
                    lead.name = result.identity.name or lead.name
                    action = "Updated"

                lead.result = merge_result(lead.result, result)
                lead.fatal_error = result.fatal_error
                # Failed stages become due immediately; skipped ones keep their schedule
                for stage, column in STAGE_DUE_COLUMNS.items():
                    outcome = result.outcome(stage)
                    if stage in succeeded:
                        setattr(lead, column.key, due)
                    elif outcome is not None and outcome.attempted:
                        setattr(lead, column.key, None)
                if result.fatal_error is None:
                    lead.last_enriched_at = now

                session.commit()
                session.refresh(lead)
                session.expunge(lead)
            except Exception as e:
                session.rollback()
                logger.error(f"Failed to save result for {website}: {e}")
                raise

        logger.info(f"{action} enriched lead {website} ({len(succeeded)} stage(s) refreshed)")
        return lead

    def get_result(self, url: str) -> Optional[Dict[str, Any]]:
        """Stored result JSON for a lead URL, or None."""
        website = canonicalize_url(url)
        with self.session_factory() as session:
            lead = session.execute(
                select(EnrichedLead).where(EnrichedLead.website == website)
            ).scalar_one_or_none()
            return dict(lead.result) if lead and lead.result else None

    def leads_due_for_refresh(
        self,
        stage: str,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[LeadIdentity]:
        """
        Leads whose ``stage`` data is missing or expired.

        Args:
            stage: Stage name (see scrape_lead.lead_models.STAGE_ORDER)
            now: Reference time (naive UTC, default: current time)
            limit: Maximum number of leads

        Returns:
            LeadIdentity list, oldest due first

        Raises:
            ValueError: For an unknown stage
        """
        if stage not in STAGE_DUE_COLUMNS:
            raise ValueError(f"Unknown stage: {stage}")

        column = STAGE_DUE_COLUMNS[stage]
        now = now or utc_naive_now()
        stmt = (
            select(EnrichedLead)
            .where(or_(column.is_(None), column <= now))
            .order_by(column.is_(None).desc(), column.asc(), EnrichedLead.id.asc())
        )
        if limit:
            stmt = stmt.limit(limit)

        with self.session_factory() as session:
            leads = session.execute(stmt).scalars().all()
            identities = [LeadIdentity(name=lead.name, url=lead.website) for lead in leads]

        logger.info(f"{len(identities)} lead(s) due for {stage} refresh")
        return identities
