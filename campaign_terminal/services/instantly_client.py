"""
Instantly API v2 client - MetricsProvider over httpx.

Normalizes the platform's wire format into domain records:
    - emails_sent_count / reply_count / open_count ... -> MetricsSnapshot
    - numeric campaign status -> "draft" / "active" / "paused" / "completed"
    - numeric provider code -> "Google" / "Microsoft" / "SMTP" / "Other"

Transient failures (429/5xx, network errors) are retried with exponential
backoff; anything left over surfaces as UpstreamUnavailableError.
"""

import asyncio
from datetime import datetime
from typing import Any

import httpx

from campaign_terminal.config import settings
from campaign_terminal.infrastructure.observability.logging import get_logger
from campaign_terminal.models.domain.metrics_domain import (
    Account,
    CampaignRecord,
    ConnectionStatus,
    DateRange,
    MetricsSnapshot,
)
from campaign_terminal.services.errors import EntityNotFoundError, UpstreamUnavailableError
from campaign_terminal.services.metrics_provider import RESOURCE_KINDS, MetricsProvider

logger = get_logger(__name__)

RETRY_STATUS_CODES = {429, 500, 502, 503, 504}
BACKOFF_FACTOR = 2
MAX_PAGES = 20
PAGE_SIZE = 100

CAMPAIGN_STATUS_MAP: dict[int, str] = {1: "draft", 2: "active", 3: "paused", 4: "completed"}
PROVIDER_CODE_MAP: dict[int, str] = {1: "Google", 2: "Microsoft", 3: "SMTP", 4: "Other"}

RESOURCE_ENDPOINTS: dict[str, str] = {
    "lead_lists": "/lead-lists",
    "block_list": "/block-lists-entries",
    "templates": "/email-templates",
    "subsequences": "/subsequences",
    "team": "/workspace-members",
    "audit_log": "/audit-logs",
    "step_analytics": "/campaigns/analytics/steps",
    "daily_analytics": "/campaigns/analytics/daily",
}

TAG_ENDPOINTS: tuple[str, ...] = ("/accounts/tags", "/custom-tags", "/tags")


def extract_array(data: Any) -> list[dict[str, Any]]:
    """Pull the item list out of any of the v2 wrapper shapes."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for wrapper in ("items", "data", "campaigns", "accounts"):
            if isinstance(data.get(wrapper), list):
                return data[wrapper]
    return []


def _int(raw: dict[str, Any], field: str) -> int:
    return int(raw.get(field) or 0)


def snapshot_from_analytics(raw: dict[str, Any]) -> MetricsSnapshot:
    return MetricsSnapshot(
        sent=_int(raw, "emails_sent_count"),
        contacted=_int(raw, "contacted_count"),
        total_leads=_int(raw, "leads_count"),
        replies=_int(raw, "reply_count"),
        positive_replies=_int(raw, "total_interested"),
        opportunities=_int(raw, "total_opportunities"),
        meetings=_int(raw, "total_meeting_booked"),
        bounced=_int(raw, "bounced_count"),
        opened=_int(raw, "open_count"),
    )


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _tag_names(raw_tags: Any) -> list[str]:
    names = []
    for tag in raw_tags or []:
        if isinstance(tag, str):
            names.append(tag)
        elif isinstance(tag, dict) and (tag.get("label") or tag.get("name")):
            names.append(tag.get("label") or tag.get("name"))
    return names


def account_from_raw(raw: dict[str, Any]) -> Account:
    status = int(raw.get("status") if raw.get("status") is not None else 1)
    warmup_enabled = raw.get("warmup_status") == 1

    if status <= 0 or raw.get("setup_pending"):
        label = "disconnected"
    elif warmup_enabled:
        label = "warmup"
    else:
        label = "connected"

    return Account(
        email=raw.get("email", ""),
        status_code=status,
        status_label=label,
        error_message=raw.get("error_message") or raw.get("status_message") or None,
        health_score=raw.get("stat_health_score"),
        warmup_score=raw.get("stat_warmup_score"),
        landed_inbox=raw.get("landed_inbox"),
        landed_spam=raw.get("landed_spam"),
        warmup_enabled=warmup_enabled,
        daily_limit=int(raw.get("daily_limit") or 50),
        provider=PROVIDER_CODE_MAP.get(raw.get("provider_code"), "Unknown"),
        tags=_tag_names(raw.get("tags")),
        last_used=_parse_timestamp(raw.get("timestamp_last_used")),
    )


class InstantlyClient(MetricsProvider):
    """
    Async Instantly v2 client.

    Args:
        api_key: Bearer key (defaults to settings)
        transport: Optional httpx transport, used by tests to stub the API
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_factor: float = BACKOFF_FACTOR,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.INSTANTLY_API_KEY
        self.base_url = (base_url or settings.INSTANTLY_API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.INSTANTLY_TIMEOUT_SECONDS
        self.max_retries = max_retries or settings.INSTANTLY_MAX_RETRIES
        self.backoff_factor = backoff_factor
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Instantly client closed")

    async def _request_with_retry(
        self, method: str, path: str, params: dict | None = None, json: dict | None = None
    ) -> httpx.Response:
        """
        Perform a request with retry/backoff handling.

        Retries transient statuses and network errors; the last attempt's
        response (or error) is returned to the caller unmodified.
        """
        client = self._http()

        for attempt in range(1, self.max_retries + 1):
            try:
                response = await client.request(method, path, params=params, json=json)

                if response.status_code in RETRY_STATUS_CODES and attempt < self.max_retries:
                    wait_time = self.backoff_factor**attempt
                    logger.warning(
                        "Instantly transient status",
                        path=path,
                        status_code=response.status_code,
                        attempt=attempt,
                        wait_time=wait_time,
                    )
                    await asyncio.sleep(wait_time)
                    continue

                return response

            except httpx.RequestError as exc:
                if attempt == self.max_retries:
                    raise

                wait_time = self.backoff_factor**attempt
                logger.warning(
                    "Instantly request error, retrying",
                    path=path,
                    attempt=attempt,
                    wait_time=wait_time,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                await asyncio.sleep(wait_time)

        raise UpstreamUnavailableError(f"{method} {path} failed: retries exhausted")

    async def _call(
        self,
        path: str,
        params: dict | None = None,
        method: str = "GET",
        json: dict | None = None,
        entity_type: str = "resource",
    ) -> Any:
        if not self.api_key:
            raise UpstreamUnavailableError(
                "API key not configured", status_code=401, recoverable=False
            )

        try:
            response = await self._request_with_retry(method, path, params=params, json=json)
        except httpx.RequestError as e:
            logger.error(
                "Instantly API unreachable",
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise UpstreamUnavailableError("Unable to connect to Instantly API", detail=str(e)) from e

        if response.status_code == 404:
            raise EntityNotFoundError(entity_type, path)

        if response.is_error:
            logger.error(
                "Instantly API error",
                path=path,
                status_code=response.status_code,
                body_preview=response.text[:200],
            )
            raise UpstreamUnavailableError(
                f"API Error: {response.status_code}",
                status_code=response.status_code,
                detail=response.text[:500],
                recoverable=response.status_code in RETRY_STATUS_CODES,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailableError(
                "Invalid JSON response", status_code=response.status_code, detail=response.text[:200]
            ) from e

    async def _paginate(self, path: str, params: dict | None = None, limit: int | None = None) -> list[dict]:
        """Follow next_starting_after cursors until exhausted, MAX_PAGES, or limit items."""
        items: list[dict] = []
        query = {"limit": PAGE_SIZE, **(params or {})}

        for _ in range(MAX_PAGES):
            data = await self._call(path, params=query)
            items.extend(extract_array(data))
            cursor = data.get("next_starting_after") if isinstance(data, dict) else None
            if not cursor or (limit is not None and len(items) >= limit):
                break
            query["starting_after"] = cursor

        return items[:limit] if limit is not None else items

    # ============ CAMPAIGNS ============

    async def _campaign_analytics(self, date_range: DateRange | None, campaign_id: str | None = None) -> list[dict]:
        params: dict[str, str] = date_range.as_params() if date_range else {}
        if campaign_id:
            params["id"] = campaign_id
        return extract_array(await self._call("/campaigns/analytics", params=params, entity_type="campaign"))

    async def list_campaigns(self, date_range: DateRange | None = None) -> list[CampaignRecord]:
        raw_campaigns, raw_analytics = await asyncio.gather(
            self._paginate("/campaigns"),
            self._campaign_analytics(date_range),
        )
        analytics_by_id = {a.get("campaign_id"): a for a in raw_analytics}

        campaigns = []
        for raw in raw_campaigns:
            status = CAMPAIGN_STATUS_MAP.get(raw.get("status"), "unknown")
            if status != "active":
                continue
            analytics = analytics_by_id.get(raw.get("id"))
            campaigns.append(
                CampaignRecord(
                    id=raw.get("id", ""),
                    name=raw.get("name", ""),
                    status=status,
                    tags=list(raw.get("email_tag_list") or []),
                    metrics=snapshot_from_analytics(analytics) if analytics else None,
                )
            )

        logger.info(
            "Campaigns fetched",
            total=len(raw_campaigns),
            active=len(campaigns),
            with_analytics=sum(1 for c in campaigns if c.metrics is not None),
        )
        return campaigns

    async def get_aggregated_metrics(
        self, entity_id: str, date_range: DateRange | None = None
    ) -> MetricsSnapshot:
        rows = await self._campaign_analytics(date_range, campaign_id=entity_id)
        if not rows:
            raise EntityNotFoundError("campaign", entity_id)
        return MetricsSnapshot.combine([snapshot_from_analytics(row) for row in rows])

    # ============ ACCOUNTS ============

    async def get_accounts(self) -> list[Account]:
        raw_accounts = await self._paginate("/accounts")
        accounts = [account_from_raw(raw) for raw in raw_accounts]
        logger.info("Accounts fetched", count=len(accounts))
        return accounts

    async def list_tags(self) -> list[str]:
        """Try the known tag endpoints in turn; a workspace without tags yields []."""
        for path in TAG_ENDPOINTS:
            try:
                data = await self._call(path)
            except EntityNotFoundError:
                continue
            return _tag_names(extract_array(data))
        logger.info("No tags endpoint found")
        return []

    # ============ RESOURCES ============

    async def list_resources(
        self, kind: str, search: str | None = None, limit: int = 100
    ) -> list[dict[str, Any]]:
        if kind not in RESOURCE_KINDS:
            raise ValueError(f"Unknown resource kind: {kind}")
        params = {"search": search} if search else None
        if kind in ("step_analytics", "daily_analytics"):
            return extract_array(await self._call(RESOURCE_ENDPOINTS[kind], params=params))[:limit]
        return await self._paginate(RESOURCE_ENDPOINTS[kind], params=params, limit=limit)

    async def get_workspace(self) -> dict[str, Any]:
        data = await self._call("/workspaces/current", entity_type="workspace")
        return data if isinstance(data, dict) else {}

    async def verify_email(self, email: str) -> dict[str, Any]:
        data = await self._call("/email-verification", method="POST", json={"email": email})
        return data if isinstance(data, dict) else {"email": email}

    async def test_connection(self) -> ConnectionStatus:
        if not self.api_key:
            return ConnectionStatus(success=False, message="API key not configured")
        try:
            campaigns = await self._paginate("/campaigns")
        except (UpstreamUnavailableError, EntityNotFoundError) as e:
            return ConnectionStatus(success=False, message=str(e))
        return ConnectionStatus(
            success=True, message="Connected to Instantly API v2", campaign_count=len(campaigns)
        )
