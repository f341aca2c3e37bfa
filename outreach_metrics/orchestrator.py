"""
Fetch orchestration for the outreach dashboard.

State machine:
    IDLE -> PENDING (debounce timer armed) -> LOADING (request issued)
         -> SUCCESS -> IDLE
         -> ERROR   -> IDLE

Every parameter change cancels the armed debounce timer and arms a new one,
so a burst of changes collapses into a single request. Each request carries a
sequence number; a response is applied only if its number is the latest one
issued, so a slow response to an older query can never overwrite a newer view.

Runs on a single asyncio event loop. No locks: all state mutation happens in
loop callbacks.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .api_client import is_valid_object_id
from .comparison import ComparisonStats, compare_periods, query_window
from .config import CLEAR, DashboardSettings
from .diagnostics import DiagnosticLog
from .errors import EmptyResultError, FetchError, MetricsError, ValidationError, normalize_error
from .filters import filter_campaigns
from .models import (
    STATUS_ALL,
    Campaign,
    DateWindow,
    SortSpec,
    StatusFilter,
    Workspace,
    parse_status_filter,
)
from .sorting import sort_records, toggle_sort

logger = logging.getLogger(__name__)

_UNSET = object()


class FetchState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class QueryParams:
    workspace_id: Optional[str] = None
    status_filter: StatusFilter = STATUS_ALL
    window: Optional[DateWindow] = None


@dataclass(frozen=True)
class DashboardView:
    """Everything the presentation layer shows for one applied response."""
    params: QueryParams
    request_id: int
    campaigns: Tuple[Campaign, ...]   # full response (both periods)
    filtered: Tuple[Campaign, ...]    # current window + status, response order
    rows: Tuple[Campaign, ...]        # filtered, in display order
    comparison: ComparisonStats
    sort_spec: SortSpec
    fetched_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        status = self.params.status_filter
        return {
            'workspaceId': self.params.workspace_id,
            'status': getattr(status, 'value', status),
            'window': str(self.params.window),
            'stats': self.comparison.to_dict(),
            'sortBy': self.sort_spec.field,
            'sortOrder': self.sort_spec.order.value,
            'campaigns': [c.model_dump(mode='json') for c in self.rows],
            'fetchedAt': self.fetched_at.isoformat(),
        }


Listener = Callable[[FetchState, "FetchOrchestrator"], None]


class FetchOrchestrator:
    """
    Turns parameter changes into at most one authoritative in-flight query.

    The client only needs two coroutines: list_workspaces() and
    fetch_campaign_stats(workspace_id, window, status_filter).
    """

    def __init__(
        self,
        client,
        settings: Optional[DashboardSettings] = None,
        diagnostics: Optional[DiagnosticLog] = None,
        listener: Optional[Listener] = None,
        today: Optional[date] = None,
    ):
        """
        Args:
            client: OutreachApiClient (or anything with the same coroutines)
            settings: Dashboard settings (debounce, policies, default window)
            diagnostics: Diagnostic ring buffer; created from settings if omitted
            listener: Called with (state, orchestrator) on every transition
            today: Anchor date for the default window
        """
        self.client = client
        self.settings = settings or DashboardSettings()
        self.diagnostics = (
            diagnostics if diagnostics is not None
            else DiagnosticLog(self.settings.diagnostics_capacity)
        )
        self.listener = listener

        self.params = QueryParams(
            window=DateWindow.last_n_days(self.settings.default_window_days, today)
        )
        self.sort_spec = SortSpec(
            field=self.settings.default_sort_field,
            order=self.settings.default_sort_order,
        )

        self.state = FetchState.IDLE
        self.error: Optional[FetchError] = None
        self.view: Optional[DashboardView] = None
        self.workspaces: List[Workspace] = []
        # Bootstrap failure; a later stats success does not clear it
        self.workspaces_error: Optional[FetchError] = None

        self._timer: Optional[asyncio.TimerHandle] = None
        self._latest_request = 0
        self._inflight: Dict[int, asyncio.Task] = {}
        self._settled = asyncio.Event()
        self._settled.set()

    # ==================== Read-only state ====================

    @property
    def loading(self) -> bool:
        return self.state in (FetchState.PENDING, FetchState.LOADING)

    @property
    def latest_request_id(self) -> int:
        return self._latest_request

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    # ==================== Parameter changes ====================

    def update_params(
        self,
        workspace_id: Any = _UNSET,
        status_filter: Any = _UNSET,
        window: Any = _UNSET,
    ) -> bool:
        """
        Apply parameter changes and (re)arm the debounce timer.

        Must be called from the running event loop.

        Returns:
            True if a fetch was scheduled, False if nothing changed or the
            change was rejected
        """
        changes = {}
        try:
            if workspace_id is not _UNSET:
                if not is_valid_object_id(workspace_id):
                    raise ValidationError(f"Invalid workspace id: {workspace_id!r}")
                changes['workspace_id'] = workspace_id
            if status_filter is not _UNSET:
                changes['status_filter'] = parse_status_filter(status_filter)
            if window is not _UNSET:
                if not isinstance(window, DateWindow):
                    raise ValidationError("window must be a DateWindow")
                changes['window'] = window
        except ValidationError as e:
            self._reject(e)
            return False

        params = replace(self.params, **changes)
        if params == self.params:
            logger.debug("Parameters unchanged, no fetch scheduled")
            return False

        self.params = params
        self._schedule_fetch()
        return True

    def select_workspace(self, workspace_id: str) -> bool:
        return self.update_params(workspace_id=workspace_id)

    def set_status(self, status_filter: StatusFilter) -> bool:
        return self.update_params(status_filter=status_filter)

    def set_window(self, window: DateWindow) -> bool:
        return self.update_params(window=window)

    def set_date_range(self, date_from: str, date_to: str) -> bool:
        """Set the window from YYYY-MM-DD strings."""
        try:
            window = DateWindow.from_iso_dates(date_from, date_to)
        except ValidationError as e:
            self._reject(e)
            return False
        return self.update_params(window=window)

    def refresh(self):
        """Re-fetch the current parameters (still debounced)."""
        self._schedule_fetch()

    def set_sort(self, field: str) -> SortSpec:
        """
        Toggle the display order and re-sort the current view.

        No fetch is issued; rows are re-sorted from response order so ties
        keep their original relative order.
        """
        self.sort_spec = toggle_sort(self.sort_spec, field)
        if self.view is not None:
            self.view = replace(
                self.view,
                rows=tuple(sort_records(self.view.filtered, self.sort_spec)),
                sort_spec=self.sort_spec,
            )
        logger.debug(f"Sort set to {self.sort_spec.field} {self.sort_spec.order.value}")
        return self.sort_spec

    # ==================== Workspaces ====================

    async def load_workspaces(self) -> List[Workspace]:
        """
        Fetch workspaces and select one, then schedule the first stats fetch.

        The workspace already selected this session is kept if it is still
        available; otherwise the first workspace is selected.
        """
        self._cancel_timer()
        self._transition(FetchState.LOADING)
        try:
            workspaces = await self.client.list_workspaces()
            if not workspaces:
                raise EmptyResultError("No workspaces available")
        except Exception as e:
            self.workspaces_error = normalize_error(e)
            self._fail(e, "Loading workspaces failed")
            return []

        self.workspaces_error = None
        self.workspaces = list(workspaces)
        available = [w.id for w in self.workspaces]
        selected = self.params.workspace_id
        if selected not in available:
            selected = available[0]
        logger.info(f"Selected workspace {selected} ({len(available)} available)")

        self.params = replace(self.params, workspace_id=selected)
        self._schedule_fetch()
        return self.workspaces

    # ==================== Waiting & shutdown ====================

    async def wait_until_idle(self):
        """Wait until no timer is armed and the latest request has completed."""
        await self._settled.wait()

    async def drain(self):
        """wait_until_idle(), then also wait for superseded requests to finish."""
        await self.wait_until_idle()
        if self._inflight:
            await asyncio.gather(*self._inflight.values(), return_exceptions=True)

    def shutdown(self):
        """Cancel the debounce timer and every in-flight request."""
        self._cancel_timer()
        for task in list(self._inflight.values()):
            task.cancel()
        self._transition(FetchState.IDLE)

    # ==================== Internals ====================

    def _transition(self, state: FetchState):
        previous = self.state
        self.state = state
        if state == FetchState.IDLE:
            self._settled.set()
        else:
            self._settled.clear()
        logger.debug(f"State {previous.value} -> {state.value}")
        if self.listener is not None:
            self.listener(state, self)

    def _schedule_fetch(self):
        loop = asyncio.get_running_loop()
        self._cancel_timer()
        self._timer = loop.call_later(self.settings.debounce_seconds, self._issue_fetch)
        self._transition(FetchState.PENDING)

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _issue_fetch(self):
        self._timer = None
        params = self.params
        if params.workspace_id is None:
            logger.debug("No workspace selected, nothing to fetch")
            self._transition(FetchState.IDLE)
            return

        self._latest_request += 1
        request_id = self._latest_request

        if self.settings.abort_superseded:
            for task in self._inflight.values():
                task.cancel()

        task = asyncio.get_running_loop().create_task(self._run_fetch(request_id, params))
        self._inflight[request_id] = task
        task.add_done_callback(lambda _t, rid=request_id: self._inflight.pop(rid, None))

        logger.info(
            f"Request {request_id}: workspace={params.workspace_id} "
            f"status={getattr(params.status_filter, 'value', params.status_filter)} window={params.window}"
        )
        self._transition(FetchState.LOADING)

    async def _run_fetch(self, request_id: int, params: QueryParams):
        try:
            campaigns = await self.client.fetch_campaign_stats(
                params.workspace_id,
                query_window(params.window),
                params.status_filter,
            )
        except asyncio.CancelledError:
            logger.debug(f"Request {request_id} cancelled")
            raise
        except MetricsError as e:
            self._complete(request_id, params, error=e)
        except Exception as e:
            logger.exception(f"Request {request_id} failed unexpectedly")
            self._complete(request_id, params, error=e)
        else:
            self._complete(request_id, params, campaigns=campaigns)

    def _complete(
        self,
        request_id: int,
        params: QueryParams,
        campaigns: Optional[List[Campaign]] = None,
        error: Optional[BaseException] = None,
    ):
        if request_id != self._latest_request:
            logger.debug(
                f"Discarding stale response for request {request_id} "
                f"(latest is {self._latest_request})"
            )
            self.diagnostics.record(
                "Discarded stale response",
                {"request_id": request_id, "latest_request_id": self._latest_request},
            )
            return

        if error is not None:
            self._fail(error, f"Request {request_id} failed", completing=request_id)
            return

        self.view = self._build_view(request_id, params, campaigns)
        self.error = None
        logger.info(
            f"Request {request_id} applied: {len(self.view.filtered)} of "
            f"{len(self.view.campaigns)} campaigns in window"
        )
        self._finish(FetchState.SUCCESS, completing=request_id)

    def _build_view(
        self, request_id: int, params: QueryParams, campaigns: List[Campaign]
    ) -> DashboardView:
        policy = self.settings.date_filter_policy
        filtered = filter_campaigns(campaigns, params.status_filter, params.window, policy)
        comparison = compare_periods(campaigns, params.window, params.status_filter, policy)
        return DashboardView(
            params=params,
            request_id=request_id,
            campaigns=tuple(campaigns),
            filtered=tuple(filtered),
            rows=tuple(sort_records(filtered, self.sort_spec)),
            comparison=comparison,
            sort_spec=self.sort_spec,
            fetched_at=datetime.now(timezone.utc),
        )

    def _fail(self, exc: BaseException, context: str, completing: Optional[int] = None):
        fetch_error = normalize_error(exc)
        self.error = fetch_error
        if self.settings.refresh_error_policy == CLEAR:
            self.view = None

        logger.warning(f"{context} ({fetch_error.kind}): {fetch_error.message}")
        self.diagnostics.record(context, fetch_error.to_dict())
        self._finish(FetchState.ERROR, completing=completing)

    def _reject(self, exc: ValidationError):
        """Invalid parameters: surface the error, keep params and view."""
        self.error = exc.to_fetch_error()
        logger.warning(f"Rejected parameters: {exc.message}")
        self.diagnostics.record("Rejected parameters", self.error.to_dict())
        self._finish(FetchState.ERROR)

    def _finish(self, outcome: FetchState, completing: Optional[int] = None):
        latest_busy = completing != self._latest_request and self._latest_in_flight()
        if self._timer is not None or latest_busy:
            # Newer work is queued; stay busy
            return
        self._transition(outcome)
        self._transition(FetchState.IDLE)

    def _latest_in_flight(self) -> bool:
        task = self._inflight.get(self._latest_request)
        return task is not None and not task.done()
