"""HTTP client for the persona analysis service.

  POST /api/generate-persona  {"username": ...}  -> persona report JSON
  POST /api/download-report   <persona report>   -> report file bytes
"""
from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from reddidna.config import Settings
from reddidna.errors import ExportError, MalformedReportError, ServiceError, ServiceUnavailableError
from reddidna.models import PersonaReport

_log = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Prefer the service's {"error": ...} message, else name the status code."""
    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Server error: {response.status_code}"


class PersonaServiceClient:
    """Thin async wrapper; owns its httpx.AsyncClient unless one is passed in."""

    def __init__(self, settings: Settings, *, http: httpx.AsyncClient | None = None) -> None:
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(base_url=settings.base_url, timeout=settings.timeout)

    async def __aenter__(self) -> "PersonaServiceClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def generate_persona(self, identity: str) -> PersonaReport:
        _log.debug("POST /api/generate-persona username=%s", identity)
        try:
            response = await self._http.post("/api/generate-persona", json={"username": identity})
        except httpx.HTTPError as exc:
            _log.warning("persona service unreachable: %s", exc)
            raise ServiceUnavailableError() from exc

        if not response.is_success:
            message = _error_message(response)
            _log.warning("generate-persona failed (%s): %s", response.status_code, message)
            raise ServiceError(message, response.status_code)

        try:
            return PersonaReport.model_validate_json(response.content)
        except ValidationError as exc:
            _log.warning("unreadable persona report for %s: %s", identity, exc)
            raise MalformedReportError() from exc

    async def download_report(self, report: PersonaReport) -> bytes:
        try:
            response = await self._http.post("/api/download-report", json=report.to_wire())
        except httpx.HTTPError as exc:
            raise ExportError(f"Report download failed: {exc}") from exc
        if not response.is_success:
            raise ExportError(f"Failed to generate report (status {response.status_code}).")
        return response.content
