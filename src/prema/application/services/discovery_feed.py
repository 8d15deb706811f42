"""Swipe-style discovery feed with paging and filter debounce.

Hey future me - this is the state behind the Browse screen:

    candidates: [A, B, C, D, E, ...]      (ordered, append-only while paging)
                       ^ index            (current card)

- load() starts over: skip=0, one page (10 by default), index back to 0.
- like_current()/pass_current() tell the backend, then advance. When the card we just
  left was within `prefetch_threshold` of the end, the next page is fetched in the
  background and APPENDED. Prefetch errors are logged only - the user can keep
  swiping what's already loaded.
- set_filters() saves the sliders and schedules a reload after a debounce. Moving a
  slider again within the window cancels the pending reload. A reload whose request is
  already on the wire is NOT cancelled; the generation check below drops its page.

Every page request is tagged with a GENERATION number. load() bumps it. When a response
comes back for an older generation (e.g. a prefetch that started before the filters
changed) it is thrown away instead of being appended to the new list.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace

from prema.application.services.filter_preferences import FilterPreferencesService
from prema.application.services.session_manager import SessionManager
from prema.domain.entities import BrowsePage, Interaction, UserProfile
from prema.domain.value_objects import BrowseFilters, FilterPreferences
from prema.infrastructure.integrations import PremaApiClient

logger = logging.getLogger(__name__)


@dataclass
class LikeOutcome:
    """Result of liking someone.

    Hey future me - ALWAYS branch on is_match. A mutual match is the single most
    important event in the app; dropping it means the user never sees "It's a match!".
    """

    interaction: Interaction
    candidate: UserProfile | None = None

    @property
    def is_match(self) -> bool:
        return self.interaction.is_match


MatchCallback = Callable[[LikeOutcome], Awaitable[None] | None]


class DiscoveryFeed:
    """Candidate list, cursor and filters for discovery."""

    def __init__(
        self,
        client: PremaApiClient,
        session: SessionManager,
        preferences: FilterPreferencesService | None = None,
        page_size: int = 10,
        prefetch_threshold: int = 3,
        debounce_seconds: float = 0.5,
        on_match: MatchCallback | None = None,
    ) -> None:
        """Initialize the feed.

        Args:
            client: Backend API client
            session: Session providing the request context
            preferences: Optional persistence for the filter sliders
            page_size: Candidates per page
            prefetch_threshold: Fetch the next page when this close to the end
            debounce_seconds: Quiet period after a filter change before reloading
            on_match: Called with the LikeOutcome of every mutual match
        """
        self._client = client
        self._session = session
        self._preferences = preferences
        self._page_size = page_size
        self._prefetch_threshold = prefetch_threshold
        self._debounce_seconds = debounce_seconds
        self._on_match = on_match

        self._candidates: list[UserProfile] = []
        self._query: BrowseFilters | None = None
        self._index = 0
        self._generation = 0
        self._filters = FilterPreferences()
        self._filters_loaded = False
        self._is_loading = False
        self._is_interacting = False
        self._exhausted = False
        self._last_error: str | None = None

        self._prefetch_task: asyncio.Task[None] | None = None
        # Only set while the reload is still in its debounce sleep.
        self._reload_task: asyncio.Task[None] | None = None
        self._reloads_in_flight: set[asyncio.Task[None]] = set()

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def candidates(self) -> list[UserProfile]:
        return list(self._candidates)

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> UserProfile | None:
        """The candidate on screen, None when the list is used up."""
        if self._index < len(self._candidates):
            return self._candidates[self._index]
        return None

    @property
    def remaining(self) -> int:
        """Unseen candidates, the current one included."""
        return max(len(self._candidates) - self._index, 0)

    @property
    def filters(self) -> FilterPreferences:
        return self._filters

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def last_error(self) -> str | None:
        """Message of the last failed (re)load, cleared by the next success."""
        return self._last_error

    # =========================================================================
    # LOADING
    # =========================================================================

    async def _ensure_filters_loaded(self) -> None:
        if self._filters_loaded:
            return
        if self._preferences is not None:
            self._filters = await self._preferences.load()
        self._filters_loaded = True

    async def _fetch_page(self, query: BrowseFilters) -> BrowsePage:
        ctx = self._session.require_request_context()
        return await self._client.browse_users(ctx, query)

    async def load(self) -> list[UserProfile]:
        """Start over from the first page with the current filters.

        Raises:
            ApiError: Not logged in, server detail or "Failed to browse users"
        """
        await self._ensure_filters_loaded()
        self._generation += 1
        generation = self._generation
        query = self._filters.to_browse_filters(skip=0, limit=self._page_size)
        self._is_loading = True
        try:
            page = await self._fetch_page(query)
            if generation != self._generation:
                logger.debug(
                    "Discarding browse page of generation %d (now %d)",
                    generation,
                    self._generation,
                )
                return self.candidates

            self._candidates = list(page.users)
            self._query = query
            self._index = 0
            self._exhausted = not page.users
            self._last_error = None
            logger.debug("Loaded %d candidates (total %d)", len(page.users), page.total)
            return self.candidates
        except Exception as e:
            if generation == self._generation:
                self._last_error = str(e)
            raise
        finally:
            # Also runs on cancellation; a newer generation owns the flag otherwise.
            if generation == self._generation:
                self._is_loading = False

    def _maybe_prefetch(self, previous_index: int) -> None:
        if previous_index < len(self._candidates) - self._prefetch_threshold:
            return
        if self._exhausted or self._query is None:
            return
        if self._prefetch_task is not None and not self._prefetch_task.done():
            return
        # Same filters as the cards on screen, even if the sliders moved since.
        query = self._query.next_page(len(self._candidates))
        self._prefetch_task = asyncio.create_task(
            self._prefetch(self._generation, query),
            name="discovery-prefetch",
        )

    async def _prefetch(self, generation: int, query: BrowseFilters) -> None:
        try:
            page = await self._fetch_page(query)
        except Exception as e:
            logger.warning("Loading more candidates failed: %s", e)
            return

        if generation != self._generation:
            logger.debug("Discarding stale prefetch of generation %d", generation)
            return
        if not page.users:
            self._exhausted = True
            return
        self._candidates.extend(page.users)
        logger.debug("Appended %d candidates", len(page.users))

    # =========================================================================
    # INTERACTIONS
    # =========================================================================

    def _advance(self) -> None:
        previous_index = self._index
        self._index += 1
        self._maybe_prefetch(previous_index)

    async def like_current(self) -> LikeOutcome | None:
        """Like the candidate on screen and move on.

        Returns:
            The outcome (check is_match!), or None if there was nothing to like or
            another interaction is still running

        Raises:
            ApiError: Server detail or "Failed to like user" (cursor not moved)
        """
        candidate = self.current
        if candidate is None or self._is_interacting:
            return None

        self._is_interacting = True
        try:
            ctx = self._session.require_request_context()
            interaction = await self._client.like_user(ctx, candidate.id)
        finally:
            self._is_interacting = False

        outcome = LikeOutcome(interaction=interaction, candidate=candidate)
        self._advance()

        if outcome.is_match:
            logger.info("Mutual match with user %s", candidate.id)
            await self._notify_match(outcome)
        return outcome

    # The cursor has already moved on when this runs; a broken callback must not
    # cost the caller the outcome.
    async def _notify_match(self, outcome: LikeOutcome) -> None:
        if self._on_match is None:
            return
        try:
            result = self._on_match(outcome)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("on_match callback failed")

    async def pass_current(self) -> Interaction | None:
        """Pass on the candidate on screen and move on.

        Raises:
            ApiError: Server detail or "Failed to pass user" (cursor not moved)
        """
        candidate = self.current
        if candidate is None or self._is_interacting:
            return None

        self._is_interacting = True
        try:
            ctx = self._session.require_request_context()
            interaction = await self._client.pass_user(ctx, candidate.id)
        finally:
            self._is_interacting = False

        self._advance()
        return interaction

    # =========================================================================
    # FILTERS
    # =========================================================================

    async def set_filters(
        self,
        max_distance_miles: float | None = None,
        min_age: int | None = None,
        max_age: int | None = None,
    ) -> FilterPreferences:
        """Change sliders, save them and schedule a debounced reload."""
        await self._ensure_filters_loaded()
        changes: dict[str, float | int] = {}
        if max_distance_miles is not None:
            changes["max_distance_miles"] = max_distance_miles
        if min_age is not None:
            changes["min_age"] = min_age
        if max_age is not None:
            changes["max_age"] = max_age
        self._filters = replace(self._filters, **changes)

        if self._preferences is not None:
            await self._preferences.save(self._filters)

        self._cancel_reload()
        self._reload_task = asyncio.create_task(
            self._debounced_reload(), name="discovery-filter-reload"
        )
        return self._filters

    async def _debounced_reload(self) -> None:
        await asyncio.sleep(self._debounce_seconds)
        # Debounce over: from here on a newer filter change leaves this reload alone.
        task = asyncio.current_task()
        if task is not None and task is self._reload_task:
            self._reload_task = None
            self._reloads_in_flight.add(task)
            task.add_done_callback(self._reloads_in_flight.discard)
        try:
            await self.load()
        except Exception as e:
            logger.warning("Reloading candidates after filter change failed: %s", e)

    def _cancel_reload(self) -> None:
        if self._reload_task is not None and not self._reload_task.done():
            self._reload_task.cancel()
        self._reload_task = None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def _background_tasks(self) -> list[asyncio.Task[None]]:
        tasks = [self._reload_task, *self._reloads_in_flight, self._prefetch_task]
        return [t for t in tasks if t is not None and not t.done()]

    async def wait_idle(self) -> None:
        """Wait for pending and in-flight filter reloads and the prefetch to finish."""
        tasks = self._background_tasks()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def close(self) -> None:
        """Cancel background work (leaving the screen)."""
        tasks = self._background_tasks()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._reload_task = None
        self._reloads_in_flight.clear()
        self._prefetch_task = None
        self._is_loading = False
