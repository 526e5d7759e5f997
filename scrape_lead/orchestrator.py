#!/usr/bin/env python3
"""
Lead Enrichment Orchestrator

Drives one browser session through the enrichment stages for a lead and
assembles a single EnrichmentResult.

Stage order:
1. website_details (always first; every later stage is skipped if it fails)
2. facebook / instagram / linkedin (each only if its link was discovered)
3. ad_transparency (by domain)
4. page_speed (mobile + desktop)
5. search_rank (lead name on the search engine)

Stages 2-5 are independent PipelineStage units scheduled through a
semaphore sized by ``stage_concurrency``; each one borrows its own tab.

Partial-failure policy:
- a stage failure is recorded in its StageOutcome and leaves its fields empty
- a blocked LinkedIn stage goes through AuthWallEvasion before giving up
- only FatalSessionFailure and cancellation leave enrich_lead()
- the session is closed on every exit path
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from runner.logging_setup import get_logger, lead_logger
from scrape_lead.auth_wall import AuthWallEvasion
from scrape_lead.lead_config import EnrichmentConfig
from scrape_lead.lead_errors import (
    AuthWallBlocked,
    EnrichmentCancelled,
    ExtractionFailure,
    FatalSessionFailure,
    UpstreamApiFailure,
)
from scrape_lead.lead_extractors import LeadExtractors
from scrape_lead.lead_models import (
    STAGE_AD_TRANSPARENCY,
    STAGE_FACEBOOK,
    STAGE_INSTAGRAM,
    STAGE_LINKEDIN,
    STAGE_ORDER,
    STAGE_PAGE_SPEED,
    STAGE_SEARCH_RANK,
    STAGE_WEBSITE,
    EnrichmentResult,
    LeadIdentity,
    PageSpeedReport,
    StageOutcome,
    utcnow,
)
from scrape_lead.session_manager import BrowserSession, SessionManager


logger = get_logger("lead_orchestrator")

StageRunner = Callable[[BrowserSession, EnrichmentResult, Optional[asyncio.Event]], Awaitable[None]]


@dataclass
class PipelineStage:
    """One schedulable unit of enrichment work."""
    name: str
    run: StageRunner


def _cancelled(cancel_event: Optional[asyncio.Event]) -> bool:
    return cancel_event is not None and cancel_event.is_set()


class LeadEnrichmentOrchestrator:
    """
    Enrich leads stage by stage with graceful degradation.

    Usage:
        orchestrator = LeadEnrichmentOrchestrator(SessionManager(config), config=config)
        result = await orchestrator.enrich_lead(LeadIdentity("ACME GmbH", "https://acme.de"))
    """

    def __init__(
        self,
        session_manager: SessionManager,
        extractors: Optional[LeadExtractors] = None,
        config: Optional[EnrichmentConfig] = None,
        evasion: Optional[AuthWallEvasion] = None,
        result_sink: Optional[Callable[[EnrichmentResult], object]] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            session_manager: Opens the per-lead browser sessions
            extractors: Extraction callables (real scrapers by default)
            config: Enrichment configuration (defaults to the manager's)
            evasion: Auth-wall recovery routine (built from the manager by default)
            result_sink: Optional callable receiving each completed result
        """
        self.session_manager = session_manager
        self.config = config or session_manager.config
        self.extractors = extractors or LeadExtractors.default(self.config)
        self.evasion = evasion or AuthWallEvasion(session_manager, self.config)
        self.result_sink = result_sink

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def enrich_lead(
        self,
        identity: LeadIdentity,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> EnrichmentResult:
        """
        Enrich a single lead.

        Args:
            identity: Lead name and URL
            cancel_event: Set by the caller to stop starting new stages

        Returns:
            Fully shaped EnrichmentResult (possibly sparse)

        Raises:
            FatalSessionFailure: If the browser session could not be launched or died
            EnrichmentCancelled: If cancel_event was set before the run finished
        """
        if _cancelled(cancel_event):
            raise EnrichmentCancelled(f"Cancelled before enriching {identity.name}")

        log = lead_logger(logger, identity.name)
        log.info(f"Enriching lead {identity.url}")
        result = EnrichmentResult(identity=identity)
        outcomes: Dict[str, StageOutcome] = {}

        session = await self.session_manager.open_session()
        try:
            website = await self._run_stage(
                PipelineStage(STAGE_WEBSITE, self._website_stage), session, result, cancel_event
            )
            outcomes[STAGE_WEBSITE] = website

            if website.succeeded:
                stages, skipped = self._plan_stages(result)
                outcomes.update(skipped)
                for outcome in await self._run_stages(stages, session, result, cancel_event):
                    outcomes[outcome.stage_name] = outcome
            else:
                reason = "skipped: website details unavailable"
                for name in STAGE_ORDER[1:]:
                    outcomes[name] = StageOutcome.skipped(name, reason)
                log.warning("Website stage failed, skipping remaining stages")

            if _cancelled(cancel_event):
                raise EnrichmentCancelled(f"Cancelled while enriching {identity.name}")
        finally:
            await session.close()

        result.stage_outcomes = [outcomes[name] for name in STAGE_ORDER if name in outcomes]
        result.finished_at = utcnow()

        log.info(f"Done: {len(result.succeeded_stages)}/{len(STAGE_ORDER)} stages succeeded")

        await self._deliver(result)
        return result

    async def enrich_batch(
        self,
        identities: Sequence[LeadIdentity],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[EnrichmentResult]:
        """
        Enrich many leads with at most ``max_concurrent_leads`` sessions at once.

        A lead whose enrichment could not start still gets a result, annotated
        with ``fatal_error``. Results are returned in input order.
        """
        semaphore = asyncio.Semaphore(max(1, self.config.max_concurrent_leads))

        async def enrich_one(identity: LeadIdentity) -> EnrichmentResult:
            async with semaphore:
                if _cancelled(cancel_event):
                    return EnrichmentResult.failed(identity, "cancelled before start")
                try:
                    return await self.enrich_lead(identity, cancel_event)
                except FatalSessionFailure as e:
                    lead_logger(logger, identity.name).error(f"Fatal session failure: {e}")
                    return EnrichmentResult.failed(identity, str(e))
                except EnrichmentCancelled as e:
                    lead_logger(logger, identity.name).warning(str(e))
                    return EnrichmentResult.failed(identity, str(e))

        logger.info(
            f"Enriching batch of {len(identities)} lead(s), "
            f"max {self.config.max_concurrent_leads} concurrent"
        )
        results = await asyncio.gather(*(enrich_one(identity) for identity in identities))
        return list(results)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _plan_stages(self, result: EnrichmentResult):
        """Build the stages that follow the website stage, honouring link gating."""
        links = result.social_media_links
        gated = [
            (STAGE_FACEBOOK, "facebook", self._facebook_stage),
            (STAGE_INSTAGRAM, "instagram", self._instagram_stage),
            (STAGE_LINKEDIN, "linkedin", self._linkedin_stage),
        ]

        stages: List[PipelineStage] = []
        skipped: Dict[str, StageOutcome] = {}
        for name, platform, runner in gated:
            if links.get(platform):
                stages.append(PipelineStage(name, runner))
            else:
                skipped[name] = StageOutcome.skipped(name, f"skipped: no {platform} link discovered")

        stages.append(PipelineStage(STAGE_AD_TRANSPARENCY, self._ad_transparency_stage))
        stages.append(PipelineStage(STAGE_PAGE_SPEED, self._page_speed_stage))
        stages.append(PipelineStage(STAGE_SEARCH_RANK, self._search_rank_stage))
        return stages, skipped

    async def _run_stages(
        self,
        stages: List[PipelineStage],
        session: BrowserSession,
        result: EnrichmentResult,
        cancel_event: Optional[asyncio.Event],
    ) -> List[StageOutcome]:
        semaphore = asyncio.Semaphore(max(1, self.config.stage_concurrency))

        async def bounded(stage: PipelineStage) -> StageOutcome:
            async with semaphore:
                return await self._run_stage(stage, session, result, cancel_event)

        tasks = [asyncio.create_task(bounded(stage)) for stage in stages]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _run_stage(
        self,
        stage: PipelineStage,
        session: BrowserSession,
        result: EnrichmentResult,
        cancel_event: Optional[asyncio.Event],
    ) -> StageOutcome:
        """Run one stage, turning every non-fatal error into a failed StageOutcome."""
        log = lead_logger(logger, result.identity.name)
        if _cancelled(cancel_event):
            return StageOutcome.skipped(stage.name, "skipped: cancelled")

        log.info(f"Stage {stage.name} started")
        try:
            await stage.run(session, result, cancel_event)
        except (FatalSessionFailure, EnrichmentCancelled):
            raise
        except Exception as e:
            log.warning(f"Stage {stage.name} failed: {e}", exc_info=True)
            return StageOutcome(stage.name, attempted=True, succeeded=False, error_message=str(e))

        log.info(f"Stage {stage.name} completed")
        return StageOutcome(stage.name, attempted=True, succeeded=True)

    async def _deliver(self, result: EnrichmentResult):
        if self.result_sink is None:
            return
        try:
            await asyncio.to_thread(self.result_sink, result)
        except Exception as e:
            lead_logger(logger, result.identity.name).error(f"Result sink failed: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _website_stage(self, session, result, cancel_event):
        async with session.tab() as tab:
            details = await self.extractors.website_details(tab, result.identity.url)

        if details is None or details.is_empty:
            raise ExtractionFailure(f"No website details extracted from {result.identity.url}")

        result.set_social_links(details.social_media_links)
        result.imprint_details = details.imprint_details
        result.seo_info = details.seo_info

    async def _facebook_stage(self, session, result, cancel_event):
        facebook_url = result.social_media_links["facebook"]
        errors = []

        async with session.tab() as tab:
            try:
                result.facebook_followers = await self.extractors.facebook_followers(tab, facebook_url)
            except (FatalSessionFailure, EnrichmentCancelled):
                raise
            except Exception as e:
                lead_logger(logger, result.identity.name).warning(f"Facebook followers failed: {e}")
                errors.append(f"followers: {e}")

            try:
                page_id = await self.extractors.facebook_page_id(tab, facebook_url)
                if not page_id:
                    raise ExtractionFailure(f"No Facebook page id found for {facebook_url}")
                result.meta_ad_library = await self.extractors.meta_ad_library(tab, page_id)
            except (FatalSessionFailure, EnrichmentCancelled):
                raise
            except Exception as e:
                lead_logger(logger, result.identity.name).warning(f"Meta Ad Library failed: {e}")
                errors.append(f"ad library: {e}")

        if result.facebook_followers is None and result.meta_ad_library is None:
            raise ExtractionFailure("; ".join(errors) or "No Facebook data extracted")

    async def _instagram_stage(self, session, result, cancel_event):
        instagram_url = result.social_media_links["instagram"]
        async with session.tab() as tab:
            counts = await self.extractors.instagram_followers(tab, instagram_url)
        if not counts:
            raise ExtractionFailure(f"No Instagram counts found for {instagram_url}")
        result.instagram_followers = counts

    async def _linkedin_stage(self, session, result, cancel_event):
        linkedin_url = result.social_media_links["linkedin"]
        data = None

        # The primary tab is released before any evasion starts
        try:
            async with session.tab() as tab:
                data = await self.extractors.linkedin_data(tab, linkedin_url)
            if data is None:
                raise AuthWallBlocked(linkedin_url, "no company data returned")
        except AuthWallBlocked as blocked:
            lead_logger(logger, result.identity.name).warning(f"LinkedIn blocked: {blocked.reason}")
            outcome = await self.evasion.recover(
                STAGE_LINKEDIN,
                linkedin_url,
                lambda evasion_tab: self.extractors.linkedin_data(evasion_tab, linkedin_url),
                cancel_event,
            )
            if not outcome.succeeded:
                raise AuthWallBlocked(
                    linkedin_url,
                    f"still blocked after {outcome.attempt.count} evasion attempt(s)",
                ) from blocked
            data = outcome.data

        result.linkedin_data = data

    async def _ad_transparency_stage(self, session, result, cancel_event):
        async with session.tab() as tab:
            result.google_ad_transparency = await self.extractors.ad_transparency(
                tab, result.identity.url
            )

    async def _page_speed_stage(self, session, result, cancel_event):
        url = result.identity.url
        reports: Dict[str, PageSpeedReport] = {}

        # One strategy at a time: the client's requests.Session is not thread-safe
        for strategy in ("mobile", "desktop"):
            try:
                reports[strategy] = await asyncio.to_thread(self.extractors.page_speed, url, strategy)
            except Exception as e:
                lead_logger(logger, result.identity.name).warning(
                    f"PageSpeed ({strategy}) failed: {e}", exc_info=True
                )
                reports[strategy] = PageSpeedReport(
                    strategy=strategy,
                    success=False,
                    message=f"Unable to fetch PageSpeed data for the URL: {url}. Error: {e}",
                )

        mobile, desktop = reports["mobile"], reports["desktop"]
        result.page_speed_mobile = mobile
        result.page_speed_desktop = desktop

        if not mobile.success and not desktop.success:
            raise UpstreamApiFailure(
                f"PageSpeed failed for both strategies: {mobile.message} / {desktop.message}"
            )

    async def _search_rank_stage(self, session, result, cancel_event):
        async with session.tab() as tab:
            result.google_search = await self.extractors.search_rank(
                tab, result.identity.name, result.identity.url
            )
