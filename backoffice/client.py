from __future__ import annotations

import logging
from typing import Any, Optional

import requests
from fastapi.concurrency import run_in_threadpool

from backoffice.config import Settings, get_settings
from backoffice.entities import EntitySchema
from backoffice.errors import SubmissionError
from backoffice.state import Mode

logger = logging.getLogger(__name__)


class ApiSubmitter:
    """Sends a validated document to the persistence API.

    Add goes to ``POST /api/<collection>/add``, edit to
    ``PUT /api/<collection>/update/<slug>``. Rejections surface as
    :class:`SubmissionError`.
    """

    def __init__(self, schema: EntitySchema, mode: Mode, slug: str | None = None, settings: Optional[Settings] = None):
        if mode == "edit" and not slug:
            raise ValueError("Edit submissions need the entity slug")
        self.schema = schema
        self.mode = mode
        self.slug = slug
        self.settings = settings or get_settings()

    @property
    def url(self) -> str:
        base = self.settings.persistence_api_url
        if not base:
            raise SubmissionError("Persistence API is not configured")
        if self.mode == "add":
            return f"{base}/api/{self.schema.collection}/add"
        return f"{base}/api/{self.schema.collection}/update/{self.slug}"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.persistence_api_token:
            headers["Authorization"] = f"Bearer {self.settings.persistence_api_token}"
        return headers

    def _send(self, payload: dict[str, Any]) -> requests.Response:
        method = "POST" if self.mode == "add" else "PUT"
        return requests.request(
            method,
            self.url,
            json=payload,
            headers=self._headers(),
            timeout=self.settings.submit_timeout_seconds,
        )

    async def __call__(self, payload: dict[str, Any]) -> dict[str, Any]:
        label = self.schema.label
        try:
            response = await run_in_threadpool(self._send, payload)
        except requests.Timeout:
            raise SubmissionError(f"Saving the {label.lower()} timed out. Please try again.")
        except requests.RequestException as exc:
            logger.warning("%s request failed: %s", label, exc.__class__.__name__)
            raise SubmissionError(f"Could not reach the server to save the {label.lower()}.")

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.ok:
            logger.info("%s %s rejected with %s", label, self.mode, response.status_code)
            raise SubmissionError.from_response(body, response.status_code, label=label)
        if isinstance(body, dict) and body.get("success") is False:
            raise SubmissionError.from_response(body, response.status_code, label=label)

        return body if isinstance(body, dict) else {}
