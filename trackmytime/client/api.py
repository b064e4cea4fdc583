"""
HTTP client the dashboard views use to talk to the API.

Every transport problem (connection failure, non-2xx, body that is not
JSON) surfaces as a ClientError carrying the server's message when there
is one, otherwise a single fallback message. Nothing is retried.
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Union

import requests

from trackmytime.schemas.time_off import RequestView

logger = logging.getLogger(__name__)

UPDATE_FAILED = "Unable to update request status."
LOAD_FAILED = "Unable to load time-off requests."
SUBMIT_FAILED = "Something went wrong while creating the request."
SYNC_FAILED = "Failed to sync user."


class ClientError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class TimeOffApiClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 10,
        act_as: Optional[str] = None,
        api_prefix: str = "/api",
    ):
        self.base_url = base_url.rstrip("/") + api_prefix
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout
        self.act_as = act_as

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self.act_as:
            headers["X-Act-As"] = self.act_as
        if extra:
            headers.update(extra)
        return headers

    def _request(self, method: str, path: str, fallback: str, headers: Optional[Dict[str, str]] = None, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, headers=self._headers(headers), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            logger.warning(f"{method} {url} failed: {exc}")
            raise ClientError(fallback) from exc
        return response

    @staticmethod
    def _payload(response, fallback: str) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise ClientError(fallback, response.status_code) from exc
        if not isinstance(payload, dict):
            raise ClientError(fallback, response.status_code)
        if not response.ok or payload.get("ok") is False:
            raise ClientError(payload.get("error") or fallback, response.status_code)
        return payload

    def fetch_requests(self, etag: Optional[str] = None) -> Optional[Tuple[Optional[str], List[RequestView]]]:
        """(etag, requests), or None when the server says our copy is current."""
        headers = {"If-None-Match": etag} if etag else None
        response = self._request("GET", "/requests", LOAD_FAILED, headers=headers)
        if response.status_code == 304:
            return None
        payload = self._payload(response, LOAD_FAILED)
        views = [RequestView.model_validate(item) for item in payload.get("requests", [])]
        return response.headers.get("ETag"), views

    def list_requests(self) -> List[RequestView]:
        return self.fetch_requests()[1]

    def submit_request(
        self,
        type: str,
        start_date: Union[date, str],
        end_date: Union[date, str, None] = None,
        hours: Optional[int] = None,
        note: Optional[str] = None,
    ) -> RequestView:
        body = {
            "type": type,
            "startDate": str(start_date),
            "endDate": str(end_date) if end_date else None,
            "hours": hours,
            "note": note,
        }
        response = self._request("POST", "/requests", SUBMIT_FAILED, json=body)
        payload = self._payload(response, SUBMIT_FAILED)
        return RequestView.model_validate(payload["request"])

    def update_status(self, request_id: str, status: str) -> RequestView:
        response = self._request("PATCH", f"/requests/{request_id}", UPDATE_FAILED, json={"status": status})
        payload = self._payload(response, UPDATE_FAILED)
        if not payload.get("request"):
            raise ClientError(UPDATE_FAILED, response.status_code)
        return RequestView.model_validate(payload["request"])

    def sync_user(self) -> Dict[str, Any]:
        response = self._request("POST", "/users/sync", SYNC_FAILED)
        payload = self._payload(response, SYNC_FAILED)
        if payload.get("status") != "success":
            raise ClientError(payload.get("message") or SYNC_FAILED, response.status_code)
        return payload["employee"]
