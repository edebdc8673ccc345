"""Google Sheets gateway over the Sheets REST API (v4)."""

import threading
from typing import Any
from urllib.parse import quote

import requests
import structlog
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

from sheetsync.errors import FatalError, FetchError, WriteError
from sheetsync.gateway.base import SourceGateway
from sheetsync.models.config import SheetsConfig
from sheetsync.models.snapshot import Snapshot, SourceConfig
from sheetsync.utils.retry import RetryPolicy, retry_call

log = structlog.stdlib.get_logger()

SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"

# Rate limiting and server-side failures are worth another attempt; other
# 4xx responses (bad range, no permission) will not get better by retrying.
RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})

TRANSIENT_ERRORS = (requests.ConnectionError, requests.Timeout, requests.HTTPError)


class GoogleSheetsGateway(SourceGateway):
    """Reads, clears and writes a spreadsheet range through an authorized session."""

    def __init__(
        self,
        session: requests.Session,
        base_url: str = "https://sheets.googleapis.com/v4/spreadsheets",
        value_input_option: str = "RAW",
        request_timeout: float = 30.0,
        retry_policy: RetryPolicy | None = None,
    ):
        """
        Initialize the gateway.

        Args:
            session: requests session that attaches credentials, normally a
                google-auth AuthorizedSession
            base_url: Spreadsheets endpoint root
            value_input_option: RAW or USER_ENTERED
            request_timeout: Deadline in seconds for each HTTP call
            retry_policy: Retry policy for transient failures
        """
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._value_input_option = value_input_option
        self._timeout = request_timeout
        self._retry_policy = retry_policy or RetryPolicy(exceptions=TRANSIENT_ERRORS)
        log.info(
            "sheets_gateway_initialized",
            base_url=self._base_url,
            value_input_option=value_input_option,
            request_timeout=request_timeout,
        )

    @classmethod
    def from_config(cls, config: SheetsConfig) -> "GoogleSheetsGateway":
        """
        Build a gateway from service account credentials.

        Raises:
            FatalError: If the credentials file cannot be loaded
        """
        try:
            credentials = service_account.Credentials.from_service_account_file(
                config.credentials_file, scopes=[SHEETS_SCOPE]
            )
        except (OSError, ValueError, GoogleAuthError) as e:
            log.error(
                "sheets_credentials_load_failed",
                credentials_file=config.credentials_file,
                error=str(e),
            )
            raise FatalError(
                f"Unable to load Sheets credentials from {config.credentials_file}: {e}"
            ) from e

        return cls(
            session=AuthorizedSession(credentials),
            base_url=config.base_url,
            value_input_option=config.value_input_option,
            request_timeout=config.request_timeout_seconds,
            retry_policy=RetryPolicy(
                max_retries=config.max_retries,
                base_delay=config.retry_base_delay,
                exceptions=TRANSIENT_ERRORS,
            ),
        )

    def fetch(
        self, source: SourceConfig, cancel_event: threading.Event | None = None
    ) -> Snapshot:
        try:
            response = self._request("GET", self._values_url(source), cancel_event)
            payload = response.json()
        except (requests.RequestException, GoogleAuthError, ValueError) as e:
            log.error("sheet_fetch_failed", source_id=source.id, range=source.range, error=str(e))
            raise FetchError(source.id, f"Unable to retrieve data from sheet: {e}") from e

        # The API omits "values" entirely for an empty range
        values: Snapshot = payload.get("values", [])
        log.debug("sheet_fetched", source_id=source.id, row_count=len(values))
        return values

    def clear(
        self, source: SourceConfig, cancel_event: threading.Event | None = None
    ) -> None:
        try:
            self._request("POST", self._values_url(source) + ":clear", cancel_event, json={})
        except (requests.RequestException, GoogleAuthError) as e:
            log.error("sheet_clear_failed", source_id=source.id, range=source.range, error=str(e))
            raise WriteError(source.id, f"Unable to clear data from sheet: {e}") from e

        log.debug("sheet_cleared", source_id=source.id, range=source.range)

    def write(
        self,
        source: SourceConfig,
        snapshot: Snapshot,
        cancel_event: threading.Event | None = None,
    ) -> None:
        body = {"range": source.range, "majorDimension": "ROWS", "values": snapshot}
        try:
            self._request(
                "PUT",
                self._values_url(source),
                cancel_event,
                params={"valueInputOption": self._value_input_option},
                json=body,
            )
        except (requests.RequestException, GoogleAuthError) as e:
            log.error("sheet_write_failed", source_id=source.id, range=source.range, error=str(e))
            raise WriteError(source.id, f"Unable to push data to sheet: {e}") from e

        log.debug("sheet_written", source_id=source.id, row_count=len(snapshot))

    def close(self) -> None:
        self._session.close()

    def _values_url(self, source: SourceConfig) -> str:
        return (
            f"{self._base_url}/{quote(source.id, safe='')}"
            f"/values/{quote(source.range, safe='')}"
        )

    def _request(
        self,
        method: str,
        url: str,
        cancel_event: threading.Event | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        response = retry_call(
            self._send,
            method,
            url,
            policy=self._retry_policy,
            cancel_event=cancel_event,
            **kwargs,
        )
        response.raise_for_status()
        return response

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        if response.status_code in RETRYABLE_STATUS:
            response.raise_for_status()
        return response
