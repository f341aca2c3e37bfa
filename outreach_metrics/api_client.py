"""
Async HTTP client for the campaign stats backend.

Handles:
- GET /api/workspaces
- GET /api/campaign-stats (workspace, date window, optional status)
- Transport/timeout failures  -> NetworkError
- Non-2xx responses           -> ServerError (message from {error, details})
- Malformed envelopes         -> ValidationError
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .diagnostics import DiagnosticLog
from .errors import (
    EmptyResultError,
    NetworkError,
    ServerError,
    ValidationError,
    format_server_message,
)
from .models import STATUS_ALL, Campaign, DateWindow, StatusFilter, Workspace, parse_status_filter

logger = logging.getLogger(__name__)

WORKSPACES_PATH = "/api/workspaces"
CAMPAIGN_STATS_PATH = "/api/campaign-stats"

# Workspace ids are MongoDB ObjectIds (24 hex chars)
_OBJECT_ID_RE = re.compile(r'^[0-9a-fA-F]{24}$')

DATE_PARAM_NAMES = {
    "snake": ("start_date", "end_date"),
    "camel": ("startDate", "endDate"),
}

ModelT = TypeVar("ModelT", bound=BaseModel)


def is_valid_object_id(value: Any) -> bool:
    return isinstance(value, str) and bool(_OBJECT_ID_RE.match(value))


def build_stats_params(
    workspace_id: str,
    window: DateWindow,
    status_filter: StatusFilter = STATUS_ALL,
    date_param_style: str = "snake",
) -> Dict[str, str]:
    """
    Query parameters for /api/campaign-stats.

    Raises:
        ValidationError: If workspace_id is not an ObjectId
    """
    if not is_valid_object_id(workspace_id):
        raise ValidationError(f"Invalid workspace id: {workspace_id!r}")

    start_name, end_name = DATE_PARAM_NAMES[date_param_style]
    params = {
        "workspaceId": workspace_id,
        start_name: window.start_date.isoformat(),
        end_name: window.end_date.isoformat(),
    }
    status_filter = parse_status_filter(status_filter)
    if status_filter != STATUS_ALL:
        params["status"] = status_filter.value
    return params


def parse_records(data: Any, model: Type[ModelT], what: str) -> List[ModelT]:
    """
    Validate a JSON array response into models.

    Individual fields are normalized by the model; a body that is not an array,
    or an element that is not an object or lacks an id, rejects the response.
    """
    if not isinstance(data, list):
        raise ValidationError(f"Expected a JSON array of {what}, got {type(data).__name__}")

    records = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise ValidationError(f"{what}[{i}] must be an object, got {type(item).__name__}")
        try:
            records.append(model.model_validate(item))
        except PydanticValidationError as e:
            raise ValidationError(f"{what}[{i}] is malformed: {e.errors()[0]['msg']}")
    return records


class OutreachApiClient:
    """Thin async wrapper over httpx.AsyncClient for the two backend endpoints."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        date_param_style: str = "snake",
        diagnostics: Optional[DiagnosticLog] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Backend root, e.g. http://localhost:4000
            timeout: Request timeout in seconds
            date_param_style: "snake" (start_date) or "camel" (startDate)
            diagnostics: Shared diagnostic log, if any
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        if date_param_style not in DATE_PARAM_NAMES:
            raise ValueError(f"Unknown date_param_style: {date_param_style}")

        self.base_url = base_url.rstrip("/")
        self.date_param_style = date_param_style
        self.diagnostics = diagnostics
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings, diagnostics=None, transport=None) -> "OutreachApiClient":
        return cls(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout,
            date_param_style=settings.date_param_style,
            diagnostics=diagnostics,
            transport=transport,
        )

    async def aclose(self):
        await self._http.aclose()

    async def __aenter__(self) -> "OutreachApiClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    def _record(self, message: str, data: Any = None):
        if self.diagnostics is not None:
            self.diagnostics.record(message, data)

    async def _get_json(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        logger.debug(f"GET {path} params={params}")
        try:
            response = await self._http.get(path, params=params)
        except httpx.TimeoutException as e:
            self._record("Request timed out", {"path": path})
            raise NetworkError(f"Request to {path} timed out") from e
        except httpx.HTTPError as e:
            self._record("Request failed", {"path": path, "error": str(e)})
            raise NetworkError(f"Request to {path} failed: {e}") from e

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = None
            message = format_server_message(body, response.status_code)
            self._record("Server error", {"path": path, "status": response.status_code, "body": body})
            raise ServerError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            self._record("Response is not JSON", {"path": path})
            raise ValidationError(f"Response from {path} is not valid JSON") from e

    async def list_workspaces(self) -> List[Workspace]:
        """
        Fetch available workspaces.

        Raises:
            EmptyResultError: If the backend has no workspaces
        """
        data = await self._get_json(WORKSPACES_PATH)
        workspaces = parse_records(data, Workspace, "workspaces")
        if not workspaces:
            raise EmptyResultError("No workspaces available")

        logger.info(f"Fetched {len(workspaces)} workspaces")
        return workspaces

    async def fetch_campaign_stats(
        self,
        workspace_id: str,
        window: DateWindow,
        status_filter: StatusFilter = STATUS_ALL,
    ) -> List[Campaign]:
        """
        Fetch campaign stats for a workspace and window.

        Args:
            workspace_id: 24-char hex workspace id
            window: Date window (sent as whole YYYY-MM-DD days)
            status_filter: "ALL" (omitted from the query) or a status

        Returns:
            Normalized campaigns, in response order
        """
        params = build_stats_params(workspace_id, window, status_filter, self.date_param_style)
        data = await self._get_json(CAMPAIGN_STATS_PATH, params=params)
        campaigns = parse_records(data, Campaign, "campaigns")

        logger.info(f"Fetched {len(campaigns)} campaigns for workspace {workspace_id} ({window})")
        return campaigns
