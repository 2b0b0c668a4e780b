"""
ReportPortal HTTP client.

This module implements the reporting client on top of the ReportPortal
REST API:
- Bearer token authentication
- JSON payloads for launches and items
- Multipart log requests when a file is attached
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from typing import Any

import aiohttp

from ..errors import ReportingError
from .base import BaseReportingClient
from .models import Artifact, LaunchResult, LogLevel, to_timestamp

logger = logging.getLogger(__name__)

AUTHORIZATION = "Authorization"
JSON_CONTENT_TYPE = "application/json"


class ReportPortalClient(BaseReportingClient):
    """
    ReportPortal reporting client.

    Example:
        client = ReportPortalClient(
            endpoint="https://rp.example.com/api/v1",
            token="...",
            project="web",
        )
        async with client:
            launch = await client.start_launch("nightly")
            suite = await client.start_item("Login", "SUITE")
            ...
            result = await client.finish_launch(launch, "PASSED")
    """

    def __init__(
        self,
        endpoint: str,
        token: str,
        project: str,
        timeout_ms: int = 30000,
    ):
        """
        Initialize the client.

        Args:
            endpoint: API root including version, e.g. "https://rp/api/v1"
            token: Access token used as bearer credentials
            project: ReportPortal project name
            timeout_ms: Per-request timeout in milliseconds
        """
        self.endpoint = endpoint.rstrip("/")
        self.project = project
        self._token = token
        self._timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000)
        self._session: aiohttp.ClientSession | None = None
        self._launch_id: str | None = None

    @property
    def is_connected(self) -> bool:
        return self._session is not None and not self._session.closed

    @property
    def launch_id(self) -> str | None:
        """Handle of the launch started by this client."""
        return self._launch_id

    @property
    def base_url(self) -> str:
        return f"{self.endpoint}/{self.project}"

    def _build_headers(self, json_body: bool = True) -> dict[str, str]:
        headers = {AUTHORIZATION: f"Bearer {self._token}"}
        # Multipart requests set their own boundary content type
        if json_body:
            headers["Content-Type"] = JSON_CONTENT_TYPE
        return headers

    async def connect(self) -> None:
        """Create the HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)

    async def disconnect(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        data: aiohttp.FormData | None = None,
    ) -> dict[str, Any]:
        """
        Send a request to the project API and return the decoded body.

        Raises:
            ReportingError: On connection problems, timeouts or HTTP >= 400
        """
        if not self.is_connected:
            raise ReportingError("Client not connected. Call connect() first.")

        url = f"{self.base_url}{path}"
        headers = self._build_headers(json_body=data is None)
        logger.debug(f"{method} {url}")

        try:
            async with self._session.request(
                method,
                url,
                json=payload if data is None else None,
                data=data,
                headers=headers,
            ) as resp:
                text = await resp.text()
                if resp.status >= 400:
                    raise ReportingError(
                        f"{method} {path} failed: {resp.reason}",
                        status=resp.status,
                        data={"body": text[:500]},
                    )
                if not text:
                    return {}
                try:
                    return json.loads(text)
                except json.JSONDecodeError as e:
                    raise ReportingError(
                        f"Invalid JSON response: {e}",
                        status=resp.status,
                        data={"body": text[:500]},
                    ) from e

        except asyncio.TimeoutError as e:
            raise ReportingError(
                f"Request timed out after {self._timeout.total}s",
                data={"url": url},
            ) from e
        except aiohttp.ClientConnectorError as e:
            raise ReportingError(f"Connection failed: {e}", data={"url": url}) from e
        except aiohttp.ClientError as e:
            raise ReportingError(f"HTTP error: {e}", data={"url": url}) from e

    # ─────────────────────────────────────────────────────────────────────
    # Launch
    # ─────────────────────────────────────────────────────────────────────

    async def start_launch(
        self,
        name: str,
        description: str = "",
        attributes: list[dict[str, Any]] | None = None,
        rerun: bool = False,
        rerun_of: str | None = None,
    ) -> str:
        payload: dict[str, Any] = {
            "name": name,
            "description": description,
            "attributes": attributes or [],
            "startTime": to_timestamp(),
            "mode": "DEFAULT",
        }
        if rerun:
            payload["rerun"] = True
        if rerun_of:
            payload["rerunOf"] = rerun_of

        data = await self._request("POST", "/launch", payload)
        launch_id = data.get("id")
        if not launch_id:
            raise ReportingError("Launch response did not contain an id", data=data)
        self._launch_id = launch_id
        logger.info(f"Started launch {launch_id}")
        return launch_id

    async def finish_launch(self, handle: str, status: str | None = None) -> LaunchResult:
        payload: dict[str, Any] = {"endTime": to_timestamp()}
        if status:
            payload["status"] = status
        data = await self._request("PUT", f"/launch/{handle}/finish", payload)
        return LaunchResult.from_dict(handle, data)

    # ─────────────────────────────────────────────────────────────────────
    # Items
    # ─────────────────────────────────────────────────────────────────────

    async def start_item(
        self,
        name: str,
        item_type: str,
        has_stats: bool = True,
        parent_handle: str | None = None,
        start_time: datetime | None = None,
    ) -> str:
        payload = {
            "name": name,
            "type": item_type,
            "hasStats": has_stats,
            "launchUuid": self._launch_id,
            "startTime": to_timestamp(start_time),
        }
        path = f"/item/{parent_handle}" if parent_handle else "/item"
        data = await self._request("POST", path, payload)
        handle = data.get("id")
        if not handle:
            raise ReportingError(f"Item '{name}' response did not contain an id", data=data)
        return handle

    async def finish_item(
        self,
        handle: str,
        status: str | None = None,
        message: str | None = None,
        end_time: datetime | None = None,
    ) -> None:
        payload: dict[str, Any] = {
            "endTime": to_timestamp(end_time),
            "launchUuid": self._launch_id,
        }
        if status:
            payload["status"] = status
        if message:
            payload["description"] = message
        await self._request("PUT", f"/item/{handle}", payload)

    # ─────────────────────────────────────────────────────────────────────
    # Logs
    # ─────────────────────────────────────────────────────────────────────

    def _build_log_entry(
        self,
        handle: str,
        level: LogLevel,
        message: str,
        time: datetime | None,
    ) -> dict[str, Any]:
        return {
            "launchUuid": self._launch_id,
            "itemUuid": handle,
            "time": to_timestamp(time),
            "message": message,
            "level": LogLevel(level).value,
        }

    async def send_log(
        self,
        handle: str,
        level: LogLevel,
        message: str,
        time: datetime | None = None,
        artifact: Artifact | None = None,
    ) -> None:
        entry = self._build_log_entry(handle, level, message, time)
        if artifact is None:
            await self._request("POST", "/log", entry)
            return

        entry["file"] = {"name": artifact.name}
        form = aiohttp.FormData()
        form.add_field(
            "json_request_part",
            json.dumps([entry]),
            content_type=JSON_CONTENT_TYPE,
        )
        form.add_field(
            "file",
            artifact.content,
            filename=artifact.name,
            content_type=artifact.mime,
        )
        await self._request("POST", "/log", data=form)

    def __repr__(self) -> str:
        status = "connected" if self.is_connected else "disconnected"
        return f"ReportPortalClient(url={self.base_url!r}, status={status})"
