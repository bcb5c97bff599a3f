"""Client for the Plausible Stats API v2."""

import json

import requests

from fivetran_connector_sdk import Logging as log

from checkpoint_advancer import PageResult
from config import PlausibleCredentials, SyncConfig
from sync_planner import QueryRequest
from timeseries import records_from_results


class UpstreamAPIError(Exception):
    """Raised when Plausible answers with a non-success status."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Plausible API request failed (status={status_code})")


class PlausibleClient:
    """
    Sends queries to POST /api/v2/query with bearer-token authentication.
    No retries are made here: a failed request is retried by the caller from the same checkpoint.
    """

    def __init__(self, credentials: PlausibleCredentials, config: SyncConfig):
        self.credentials = credentials
        self.config = config
        self.headers = {
            "Authorization": f"Bearer {credentials.api_key}",
            "Content-Type": "application/json",
        }

    def query(self, body: dict) -> dict:
        """
        Execute a raw query and return the decoded JSON response.
        Raises:
            UpstreamAPIError: if Plausible responds with a non-2xx status.
            requests.exceptions.RequestException: on network failures and timeouts.
        """
        response = requests.post(
            self.config.api_url,
            headers=self.headers,
            json=body,
            timeout=self.config.request_timeout_seconds,
        )
        if not response.ok:
            raise UpstreamAPIError(response.status_code, response.text)
        return response.json()

    def probe(self, request: QueryRequest) -> None:
        """Run a connectivity check; raises on failure."""
        self.query(request.to_query(self.credentials.site_id))
        log.info(f"Connection test succeeded for site {self.credentials.site_id}")

    def fetch_page(self, request: QueryRequest) -> PageResult:
        """Fetch one page of hourly timeseries rows and convert them to records."""
        body = request.to_query(self.credentials.site_id)
        log.info(f"Executing Plausible query: {json.dumps(body, indent=2)}")

        payload = self.query(body)
        results = payload.get("results") or []
        total_rows = (payload.get("meta") or {}).get("total_rows")

        log.info(
            f"Fetched rows {request.offset} to {request.offset + request.page_size}, "
            f"total {total_rows} rows."
        )

        return PageResult(
            records=records_from_results(results, self.config.timezone),
            total_rows=total_rows,
            window=request.window,
            offset=request.offset,
        )
