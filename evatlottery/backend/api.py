import os
import logging
from urllib.parse import urljoin
from dotenv import load_dotenv
import requests
from .utils import open_session
from ..errors import BackendUnavailableError
from typing import Any, Optional, Mapping

logger = logging.getLogger(__name__)


class WebhookClient:
    """HTTP client for the workflow-automation webhooks backing the lottery."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 45,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        load_dotenv()
        url = base_url or os.getenv("WEBHOOK_BASE_URL")
        if not url:
            raise ValueError("Environment variable 'WEBHOOK_BASE_URL' is not set")

        self.base_url = url.rstrip("/")
        self.session = session or open_session(api_key)
        self.timeout = timeout

    # -------- core request --------
    def _request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Error payloads (``{"success": false, ...}``) are returned as-is with
        any HTTP status so the caller can map them onto the error taxonomy.
        Transport failures, unexpected statuses and non-JSON bodies raise
        :class:`BackendUnavailableError`.
        """
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        try:
            r = self.session.request(
                method=method.upper(),
                url=url,
                headers=headers,
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Webhook %s %s failed: %s", method.upper(), path, exc)
            raise BackendUnavailableError(str(exc)) from exc

        try:
            body = r.json() if r.content else None
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("success") is False:
            return body
        try:
            r.raise_for_status()
        except requests.HTTPError as exc:
            logger.error("Webhook %s %s returned HTTP %s", method.upper(), path, r.status_code)
            raise BackendUnavailableError(str(exc)) from exc
        if body is None:
            raise BackendUnavailableError(f"Webhook {path} returned no JSON body")
        return body

    # -------- API callers --------
    def scan(self, qr_code: str, phone: str, timestamp: str) -> dict:
        return self._request(
            "POST",
            "/scan",
            json={"qr_code": qr_code, "phone": phone, "timestamp": timestamp},
        )

    def leaderboard(self, phone: Optional[str], period: str) -> dict:
        return self._request(
            "GET",
            "/leaderboard",
            params={"phone": phone or "", "period": period},
        )

    def audit_log(self) -> dict:
        return self._request("GET", "/audit-log")

    def register(self, phone: str) -> dict:
        return self._request("POST", "/register", json={"phone": phone})

    def reset(self, admin_email: Optional[str]) -> dict:
        return self._request("POST", "/reset", json={"admin": admin_email})
