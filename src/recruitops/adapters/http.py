"""HTTP clients for the matcher, research, queue and draft services."""

from __future__ import annotations

from typing import Any, Sequence, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from ..errors import NetworkFailure
from ..schemas import (
    DeepResearchResponse,
    DraftSnapshot,
    EnrichmentRow,
    MatchResponse,
    QuickResearchResponse,
)

ModelT = TypeVar("ModelT", bound=BaseModel)


class _JSONServiceClient:
    """Bearer-authenticated JSON client; any transport error or non-2xx is a NetworkFailure."""

    service = "http"

    def __init__(
        self,
        endpoint: str,
        api_key: str | None = None,
        *,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._endpoint = endpoint.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._client = client
        self._logger = structlog.get_logger(__name__)

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        if extra:
            headers.update(extra)
        return headers

    async def _send(
        self,
        method: str,
        url: str,
        *,
        payload: Any = None,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        allow_not_found: bool = False,
    ) -> Any:
        request_headers = self._headers(headers)
        try:
            if self._client is not None:
                response = await self._client.request(
                    method, url, json=payload, params=params, headers=request_headers
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.request(
                        method, url, json=payload, params=params, headers=request_headers
                    )
        except httpx.HTTPError as exc:
            self._logger.warning("http.request_failed", service=self.service, url=url, error=str(exc))
            raise NetworkFailure(f"{self.service} request failed: {exc}", service=self.service) from exc

        if allow_not_found and response.status_code == 404:
            return None
        if not response.is_success:
            self._logger.warning(
                "http.bad_status", service=self.service, url=url, status_code=response.status_code
            )
            raise NetworkFailure(
                f"{self.service} returned HTTP {response.status_code}",
                status_code=response.status_code,
                service=self.service,
            )
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkFailure(f"{self.service} returned invalid JSON", service=self.service) from exc

    def _parse(self, model: type[ModelT], body: Any) -> ModelT:
        """Validate a response body; a payload that does not fit is a failed call."""
        try:
            return model.model_validate(body)
        except ValidationError as exc:
            self._logger.warning(
                "http.malformed_payload", service=self.service, errors=exc.error_count()
            )
            raise NetworkFailure(
                f"{self.service} returned a malformed payload: {exc.error_count()} error(s)",
                service=self.service,
            ) from exc


class HTTPMatcherService(_JSONServiceClient):
    service = "matcher"

    async def fetch(self, job_id: str, *, limit: int, offset: int) -> MatchResponse:
        body = await self._send(
            "POST",
            self._endpoint,
            payload={"job_id": job_id, "limit": limit, "offset": offset},
        )
        return self._parse(MatchResponse, body or {})


class HTTPQuickResearchService(_JSONServiceClient):
    service = "quick_research"

    async def research(
        self,
        candidates: Sequence[dict[str, Any]],
        job: dict[str, Any] | None,
        *,
        skip_research: bool,
        force_refresh: bool,
    ) -> QuickResearchResponse:
        body = await self._send(
            "POST",
            self._endpoint,
            payload={
                "candidates": list(candidates),
                "job": job,
                "skip_research": skip_research,
                "force_refresh": force_refresh,
            },
        )
        return self._parse(QuickResearchResponse, body or {})


class HTTPDeepResearchService(_JSONServiceClient):
    service = "deep_research"

    async def research(
        self,
        candidate_ids: Sequence[str],
        job_id: str | None,
        *,
        force_refresh: bool,
        batch_size: int,
    ) -> DeepResearchResponse:
        body = await self._send(
            "POST",
            self._endpoint,
            payload={
                "candidate_ids": list(candidate_ids),
                "job_id": job_id,
                "deep_research": True,
                "force_refresh": force_refresh,
                "batch_size": batch_size,
            },
        )
        return self._parse(DeepResearchResponse, body or {})


class HTTPEnrichmentQueue(_JSONServiceClient):
    """PostgREST-style table endpoint; duplicates merge on the conflict columns."""

    service = "enrichment_queue"

    async def upsert(self, rows: Sequence[EnrichmentRow]) -> None:
        if not rows:
            return
        await self._send(
            "POST",
            self._endpoint,
            payload=[row.model_dump() for row in rows],
            params={"on_conflict": "candidate_id,signal_type"},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )


class HTTPDraftPersistence(_JSONServiceClient):
    service = "drafts"

    def _url(self, session_key: str) -> str:
        return f"{self._endpoint}/{session_key}"

    async def load(self, session_key: str) -> DraftSnapshot | None:
        body = await self._send("GET", self._url(session_key), allow_not_found=True)
        if not body or not isinstance(body, dict):
            return None
        body.setdefault("session_key", session_key)
        return self._parse(DraftSnapshot, body)

    async def save(self, snapshot: DraftSnapshot) -> None:
        await self._send(
            "PUT",
            self._url(snapshot.session_key),
            payload=snapshot.model_dump(mode="json"),
        )
