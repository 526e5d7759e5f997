"""
Auth-Wall Evasion

Recovery routine for stages that hit an auth wall (LinkedIn's sign-in
interstitial being the common case).

The routine is an explicit state machine:

    NORMAL --block_detected--> BLOCKED --evasion_started--> EVADING
    EVADING --retry_succeeded--> SUCCESS
    EVADING --retry_blocked--> STILL_BLOCKED
    STILL_BLOCKED --evasion_started--> EVADING          (attempts left)
    STILL_BLOCKED --attempts_exhausted--> EXHAUSTED

Each evasion attempt runs on a fresh secondary session: a few innocuous
searches build plausible history, a randomized wait follows, then the
blocked extractor is retried on a tab of that same session. The secondary
session is closed on every path. The attempt counter only grows on a
still-blocked outcome.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from playwright.async_api import Error as PlaywrightError, Page

from runner.logging_setup import get_logger
from scrape_lead.lead_config import EnrichmentConfig
from scrape_lead.lead_errors import (
    AuthWallBlocked,
    EnrichmentCancelled,
    LeadEnrichmentError,
)
from scrape_lead.lead_models import EvasionAttempt
from scrape_lead.lead_stealth import browse_like_human


logger = get_logger("auth_wall")

# Unrelated, reputable sites searched for before a retry
DECOY_SEARCHES: List[Tuple[str, str]] = [
    ("Wikipedia", "https://www.wikipedia.org"),
    ("GitHub", "https://github.com"),
    ("Medium", "https://www.medium.com"),
    ("Stack Overflow", "https://www.stackoverflow.com"),
]


class EvasionState(Enum):
    """States of the auth-wall recovery protocol."""
    NORMAL = "normal"
    BLOCKED = "blocked"
    EVADING = "evading"
    SUCCESS = "success"
    STILL_BLOCKED = "still_blocked"
    EXHAUSTED = "exhausted"


class EvasionEvent(Enum):
    """Events that move the protocol between states."""
    BLOCK_DETECTED = "block_detected"
    EVASION_STARTED = "evasion_started"
    RETRY_SUCCEEDED = "retry_succeeded"
    RETRY_BLOCKED = "retry_blocked"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"


TRANSITIONS: Dict[Tuple[EvasionState, EvasionEvent], EvasionState] = {
    (EvasionState.NORMAL, EvasionEvent.BLOCK_DETECTED): EvasionState.BLOCKED,
    (EvasionState.BLOCKED, EvasionEvent.EVASION_STARTED): EvasionState.EVADING,
    (EvasionState.EVADING, EvasionEvent.RETRY_SUCCEEDED): EvasionState.SUCCESS,
    (EvasionState.EVADING, EvasionEvent.RETRY_BLOCKED): EvasionState.STILL_BLOCKED,
    (EvasionState.STILL_BLOCKED, EvasionEvent.EVASION_STARTED): EvasionState.EVADING,
    (EvasionState.STILL_BLOCKED, EvasionEvent.ATTEMPTS_EXHAUSTED): EvasionState.EXHAUSTED,
    # zero-attempt budget
    (EvasionState.BLOCKED, EvasionEvent.ATTEMPTS_EXHAUSTED): EvasionState.EXHAUSTED,
}

TERMINAL_STATES = frozenset({EvasionState.SUCCESS, EvasionState.EXHAUSTED})


class InvalidEvasionTransition(LeadEnrichmentError):
    """An event was fired that the current state does not accept."""

    def __init__(self, state: EvasionState, event: EvasionEvent):
        self.state = state
        self.event = event
        super().__init__(f"Event {event.value} is not valid in state {state.value}")


class EvasionStateMachine:
    """
    Tracks one blocked stage through the recovery protocol.

    The attempt counter is incremented on RETRY_BLOCKED only.
    """

    def __init__(self, stage_name: str, max_attempts: int = 2):
        self.stage_name = stage_name
        self.max_attempts = max_attempts
        self.state = EvasionState.NORMAL
        self.attempt = EvasionAttempt()
        self.history: List[EvasionState] = [self.state]

    def fire(self, event: EvasionEvent) -> EvasionState:
        key = (self.state, event)
        if key not in TRANSITIONS:
            raise InvalidEvasionTransition(self.state, event)

        previous = self.state
        self.state = TRANSITIONS[key]
        if event is EvasionEvent.RETRY_BLOCKED:
            self.attempt.count += 1
        self.history.append(self.state)

        logger.info(
            f"[{self.stage_name}] evasion {previous.value} -> {self.state.value} "
            f"(attempts {self.attempt.count}/{self.max_attempts})"
        )
        return self.state

    @property
    def can_retry(self) -> bool:
        return self.attempt.count < self.max_attempts

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


@dataclass
class EvasionOutcome:
    """Final state of one recovery run and the data it recovered, if any."""
    stage_name: str
    state: EvasionState
    attempt: EvasionAttempt
    data: Any = None
    last_error: Optional[str] = None
    history: List[EvasionState] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is EvasionState.SUCCESS


async def browse_decoys(tab: Page, config: EnrichmentConfig):
    """
    Search for a few unrelated sites to build plausible history on ``tab``.

    A decoy that fails to load is logged and skipped.
    """
    from scrape_google.google_search import perform_search

    for query, url in DECOY_SEARCHES:
        try:
            results = await perform_search(tab, query, config)
            logger.debug(f"Decoy search for '{query}' returned {len(results)} result(s)")
            if url in results or any(r.startswith(url) for r in results):
                await browse_like_human(tab, config, distance=800)
        except (LeadEnrichmentError, PlaywrightError) as e:
            logger.debug(f"Decoy search for '{query}' failed: {e}")


class AuthWallEvasion:
    """
    Recover a blocked stage by retrying it on a warmed-up secondary session.

    Usage:
        evasion = AuthWallEvasion(session_manager, config)
        outcome = await evasion.recover("linkedin", url, extract)
        if outcome.succeeded:
            data = outcome.data
    """

    def __init__(
        self,
        session_manager,
        config: Optional[EnrichmentConfig] = None,
        decoy_browser: Optional[Callable[[Page, EnrichmentConfig], Awaitable[None]]] = None,
    ):
        """
        Initialize the evasion routine.

        Args:
            session_manager: SessionManager used to open secondary sessions
            config: Enrichment configuration (defaults to the manager's)
            decoy_browser: Coroutine building browsing history on a tab
        """
        self.session_manager = session_manager
        self.config = config or session_manager.config
        self.decoy_browser = decoy_browser or browse_decoys

    @staticmethod
    async def _wait(
        machine: EvasionStateMachine,
        wait_seconds: float,
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        """Sleep out the evasion window, waking early if the lead is cancelled."""
        if cancel_event is None:
            await asyncio.sleep(wait_seconds)
            return

        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=wait_seconds)
        except asyncio.TimeoutError:
            pass
        if cancel_event.is_set():
            raise EnrichmentCancelled(f"Cancelled during {machine.stage_name} evasion wait")

    async def _attempt(
        self,
        machine: EvasionStateMachine,
        target_url: str,
        extract,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Any:
        """One secondary-session attempt. Returns extracted data or raises."""
        wait_seconds = self.config.get_evasion_wait()
        machine.attempt.window_ms = int(wait_seconds * 1000)

        secondary = await self.session_manager.open_session(label="evasion")
        try:
            async with secondary.tab() as tab:
                await self.decoy_browser(tab, self.config)
                logger.info(
                    f"[{machine.stage_name}] waiting {wait_seconds:.0f}s before retrying {target_url}"
                )
                await self._wait(machine, wait_seconds, cancel_event)
                data = await extract(tab)
        finally:
            await secondary.close()

        if data is None:
            raise AuthWallBlocked(target_url, "retry returned no data")
        return data

    async def recover(
        self,
        stage_name: str,
        target_url: str,
        extract: Callable[[Page], Awaitable[Any]],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> EvasionOutcome:
        """
        Run the recovery protocol for a stage that was just blocked.

        Args:
            stage_name: Name of the blocked stage (for logs)
            target_url: URL that was blocked
            extract: Coroutine retrying the stage's extraction on a given tab
            cancel_event: Set by the caller to stop before the next attempt or retry

        Returns:
            EvasionOutcome in state SUCCESS (with data) or EXHAUSTED

        Raises:
            EnrichmentCancelled: If cancel_event is set between attempts or
                during the wait before a retry
        """
        machine = EvasionStateMachine(stage_name, self.config.auth_wall_max_attempts)
        machine.fire(EvasionEvent.BLOCK_DETECTED)
        last_error: Optional[str] = None

        if not machine.can_retry:
            machine.fire(EvasionEvent.ATTEMPTS_EXHAUSTED)
            last_error = "evasion disabled"

        while not machine.is_terminal:
            if cancel_event is not None and cancel_event.is_set():
                raise EnrichmentCancelled(f"Cancelled during {stage_name} evasion")

            machine.fire(EvasionEvent.EVASION_STARTED)
            try:
                data = await self._attempt(machine, target_url, extract, cancel_event)
            except EnrichmentCancelled:
                raise
            except (LeadEnrichmentError, PlaywrightError) as e:
                # A secondary session that cannot launch counts as still blocked
                last_error = str(e)
                logger.warning(f"[{stage_name}] evasion attempt failed: {e}")
                machine.fire(EvasionEvent.RETRY_BLOCKED)
                if not machine.can_retry:
                    machine.fire(EvasionEvent.ATTEMPTS_EXHAUSTED)
                continue

            machine.fire(EvasionEvent.RETRY_SUCCEEDED)
            return EvasionOutcome(stage_name, machine.state, machine.attempt, data,
                                  None, list(machine.history))

        logger.warning(
            f"[{stage_name}] still blocked after {machine.attempt.count} evasion attempt(s)"
        )
        return EvasionOutcome(stage_name, machine.state, machine.attempt, None,
                              last_error, list(machine.history))
