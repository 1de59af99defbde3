"""Rate-limited client for the Anthropic Messages API."""

import json
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import psycopg

from formai.analysis.models import ApiResult
from formai.analysis.rate_limiter import RateLimiter
from formai.config.options import AnalysisOptions
from formai.config.settings import Settings
from formai.database.exceptions import RepositoryError
from formai.database.models import AuditLogRecord
from formai.database.repositories.audit_log_repository import AuditLogRepository
from formai.logging.logger import Log
from formai.security.vault import Vault

SYSTEM_PROMPT = (
    "You are an AI assistant analyzing form submissions for a business. "
    "Provide insights about the submitter, their company, and potential business "
    "opportunities. Search for publicly available information when possible. "
    "Format your response in clear sections with headers."
)

CONNECTION_TEST_PROMPT = (
    "Hello, this is a test message. Please respond with "
    '"Connection successful" if you receive this.'
)

DISABLED_ERROR = "AI analysis is disabled."
MISSING_KEY_ERROR = "API key not configured."
REQUEST_FAILED_ERROR = "API request failed."
INVALID_FORMAT_ERROR = "Invalid API response format."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisApiClient:
    """Sends composed prompts to the inference API, one request at a time.

    Every public method returns an ApiResult; transport, HTTP and format
    failures are reported in the result and never raised. There is no
    internal retry.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        options: AnalysisOptions,
        vault: Vault,
        rate_limiter: RateLimiter,
        audit_logs: AuditLogRepository,
        http_client: httpx.Client | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._url = settings.api_url
        self._api_version = settings.api_version
        self._options = options
        self._vault = vault
        self._rate_limiter = rate_limiter
        self._audit_logs = audit_logs
        self._http = http_client or httpx.Client(timeout=settings.api_timeout_seconds)
        self._clock = clock

    def close(self) -> None:
        self._http.close()

    def invoke(self, message: str, *, form_id: int = 0, entry_id: int = 0) -> ApiResult:
        """Send one message and return the parsed outcome."""
        if not self._options.enabled:
            return ApiResult.failure(DISABLED_ERROR)

        api_key = self._vault.get_credential()
        if not api_key:
            return ApiResult.failure(MISSING_KEY_ERROR)

        body = self._build_body(message)
        slept = self._rate_limiter.wait(self._options.rate_limit_seconds)
        if slept:
            Log.debug(f"Rate limit: waited {slept:.2f}s before request", entry_id=entry_id)

        try:
            response = self._http.post(self._url, json=body, headers=self._headers(api_key))
        except httpx.HTTPError as exc:
            error = str(exc) or type(exc).__name__
            Log.error(f"Analysis API transport error: {error}", entry_id=entry_id)
            self._record_attempt(form_id, entry_id, body, "error", "", error)
            return ApiResult.failure(error)

        data = _json_or_empty(response)
        if response.status_code != 200:
            remote_message = _error_message(data)
            self._record_attempt(
                form_id,
                entry_id,
                body,
                "error",
                "",
                remote_message or f"HTTP {response.status_code}",
            )
            Log.warning(
                f"Analysis API returned HTTP {response.status_code}",
                entry_id=entry_id,
            )
            return ApiResult.failure(
                remote_message or REQUEST_FAILED_ERROR,
                status_code=response.status_code,
            )

        self._record_attempt(form_id, entry_id, body, "success", response.text, None)
        text = _first_text_block(data)
        if text is None:
            return ApiResult.failure(INVALID_FORMAT_ERROR)
        usage = data.get("usage")
        Log.info("Analysis API call succeeded", entry_id=entry_id, usage=usage)
        return ApiResult.success(text, usage=usage)

    def test_connection(self) -> ApiResult:
        """Send a canned prompt through the normal request path."""
        return self.invoke(CONNECTION_TEST_PROMPT, form_id=0, entry_id=0)

    def _build_body(self, message: str) -> dict[str, Any]:
        return {
            "model": self._options.model,
            "max_tokens": self._options.max_tokens,
            "temperature": self._options.temperature,
            "messages": [{"role": "user", "content": message}],
            "system": SYSTEM_PROMPT,
        }

    def _headers(self, api_key: str) -> dict[str, str]:
        return {
            "content-type": "application/json",
            "x-api-key": api_key,
            "anthropic-version": self._api_version,
        }

    def _record_attempt(
        self,
        form_id: int,
        entry_id: int,
        body: dict[str, Any],
        status: str,
        response_text: str,
        error_message: str | None,
    ) -> None:
        if not self._options.logging_enabled:
            return
        request_to_log = {k: v for k, v in body.items() if k != "api_key"}
        now = self._clock()
        try:
            self._audit_logs.insert(
                AuditLogRecord(
                    form_id=int(form_id or 0),
                    entry_id=int(entry_id or 0),
                    status=status,
                    request=json.dumps(request_to_log),
                    response=response_text,
                    error_message=error_message,
                    created_at=now,
                )
            )
            cutoff = now - timedelta(days=self._options.log_retention_days)
            purged = self._audit_logs.delete_older_than(cutoff)
        except (psycopg.Error, RepositoryError) as exc:
            Log.warning(f"Failed to write analysis audit log: {exc}", entry_id=entry_id)
            return
        if purged:
            Log.debug(f"Purged {purged} expired audit log rows")


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _error_message(data: dict[str, Any]) -> str:
    error = data.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return ""


def _first_text_block(data: dict[str, Any]) -> str | None:
    content = data.get("content")
    if not isinstance(content, list) or not content:
        return None
    first = content[0]
    if not isinstance(first, dict) or not isinstance(first.get("text"), str):
        return None
    return first["text"]
