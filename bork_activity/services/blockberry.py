"""Blockberry API integration service"""
import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

import requests

from bork_activity.backoff import BackoffPolicy, FetchState, RateLimitTracker, sleep_or_cancel
from bork_activity.config import Settings
from bork_activity.errors import Cancelled, ParseError, RateLimitExhausted, UpstreamError
from bork_activity.models.activity import FetchResult, PaginationCursor, StopReason

logger = logging.getLogger(__name__)

class BlockberryAPI:
    """Handles all Blockberry API interactions for one Sui wallet at a time"""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.config = settings.blockberry
        self.page_policy = BackoffPolicy(settings.BACKOFF_BASE_SECONDS, settings.MAX_RATE_LIMIT_RETRIES)
        self.balance_policy = BackoffPolicy(settings.BACKOFF_BASE_SECONDS, settings.BALANCE_RATE_LIMIT_RETRIES)
        self.transport_retries = settings.TRANSPORT_RETRIES
        self.transport_retry_delay = settings.TRANSPORT_RETRY_DELAY
        self.page_delay = settings.PAGE_DELAY_SECONDS
        self.session = session or requests.Session()

    def fetch_page(self, address: str, cursor: PaginationCursor,
                   cancel_event: Optional[threading.Event] = None) -> FetchResult:
        """Fetch one activity page, newest first, starting at cursor.

        Never raises for upstream trouble: rate-limit exhaustion, HTTP
        errors, bad bodies and cancellation all come back as a terminal
        FetchResult carrying the cursor the page was requested with.
        """
        if not cursor.has_more:
            return FetchResult([], cursor, terminal=True, stop_reason=StopReason.EXHAUSTED)

        url = f"{self.config.base_url}/accounts/{address}/activity"
        params = {'size': self.config.page_size, 'orderBy': 'DESC'}
        if cursor.token:
            params['nextCursor'] = cursor.token

        try:
            response = self._request(url, params, self.page_policy, cancel_event)
            records, next_cursor = self._parse_activity_page(response, cursor)
        except RateLimitExhausted as e:
            logger.error(f"Stopping pagination for {address}: {e}")
            return FetchResult([], cursor, terminal=True, stop_reason=StopReason.RATE_LIMITED, error=e)
        except Cancelled as e:
            logger.info(f"Pagination for {address} cancelled")
            return FetchResult([], cursor, terminal=True, stop_reason=StopReason.CANCELLED, error=e)
        except UpstreamError as e:
            logger.error(f"Error fetching activity for {address}: {e}")
            return FetchResult([], cursor, terminal=True, stop_reason=StopReason.UPSTREAM_ERROR, error=e)

        logger.info(f"Fetched {len(records)} records. hasNextPage: {next_cursor.has_more}, "
                    f"nextCursor: {next_cursor.token}")

        # Flow control so the next page does not trip the rate limiter
        if next_cursor.has_more:
            sleep_or_cancel(self.page_delay, cancel_event)

        return FetchResult(records, next_cursor, terminal=False)

    def get_balances(self, address: str,
                     cancel_event: Optional[threading.Event] = None) -> Dict[str, Dict[str, Any]]:
        """Get current coin balances keyed by coin type"""
        url = f"{self.config.base_url}/accounts/{address}/balance"
        logger.info(f"Fetching balance for wallet: {address}")

        response = self._request(url, None, self.balance_policy, cancel_event)
        data = self._parse_json(response)

        if isinstance(data, dict):
            return {
                coin: value if isinstance(value, dict) else {'balance': value}
                for coin, value in data.items()
            }
        if not isinstance(data, list):
            raise ParseError(f"Unexpected balance response type: {type(data).__name__}")

        balances = {}
        for entry in data:
            if not isinstance(entry, dict) or not entry.get('coinType'):
                continue
            balances[entry['coinType']] = {
                'balance': entry.get('balance'),
                'price': entry.get('coinPrice')
            }
        return balances

    def _headers(self) -> Dict[str, str]:
        return {
            'accept': '*/*',
            'x-api-key': self.config.api_key or ''
        }

    def _send(self, url: str, params: Optional[Dict[str, Any]],
              cancel_event: Optional[threading.Event]) -> requests.Response:
        """Single GET with retries on connection errors and timeouts"""
        for attempt in range(self.transport_retries):
            try:
                return self.session.get(
                    url,
                    params=params,
                    headers=self._headers(),
                    timeout=self.config.timeout
                )
            except requests.RequestException as e:
                if attempt == self.transport_retries - 1:
                    raise UpstreamError(f"Request to {url} failed after {attempt + 1} attempts: {e}") from e
                logger.warning(f"Retrying request after error: {e}")
                if sleep_or_cancel(self.transport_retry_delay, cancel_event):
                    raise Cancelled("Cancelled while waiting to retry")

    def _request(self, url: str, params: Optional[Dict[str, Any]], policy: BackoffPolicy,
                 cancel_event: Optional[threading.Event]) -> requests.Response:
        """Drive one request through FETCHING -> BACKOFF(n) -> DONE | FAILED"""
        tracker = RateLimitTracker(policy)

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise Cancelled("Cancelled before request")

            response = self._send(url, params, cancel_event)

            if response.status_code == 429:
                if tracker.on_rate_limited() == FetchState.FAILED:
                    raise RateLimitExhausted(tracker.consecutive_429s)
                delay = tracker.current_delay
                logger.warning(f"HTTP 429: Too many requests. Waiting {delay}s...")
                if sleep_or_cancel(delay, cancel_event):
                    raise Cancelled("Cancelled during rate-limit backoff")
                tracker.resume()
                continue

            if not 200 <= response.status_code < 300:
                tracker.on_failure()
                raise UpstreamError(
                    f"HTTP error {response.status_code}: {response.text}",
                    status_code=response.status_code,
                    body=response.text
                )

            tracker.on_success()
            return response

    def _parse_json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ParseError(f"Invalid JSON in response body: {e}", status_code=response.status_code) from e

    def _parse_activity_page(self, response: requests.Response,
                             cursor: PaginationCursor) -> Tuple[List[Dict[str, Any]], PaginationCursor]:
        """Extract records and the continuation cursor from an activity page"""
        data = self._parse_json(response)
        if not isinstance(data, dict):
            raise ParseError(f"Unexpected response format. Expected object, got: {type(data).__name__}")

        records = data.get('content') or []
        if not isinstance(records, list):
            raise ParseError(f"Unexpected content format. Expected list, got: {type(records).__name__}")

        has_more = bool(data.get('hasNextPage'))
        token = data.get('nextCursor')
        token = str(token) if token not in (None, '') else None

        # A repeated or missing token would request the same page forever
        if has_more and (token is None or token == cursor.token):
            logger.warning(f"hasNextPage set without a new cursor ({token!r}), stopping pagination")
            has_more = False

        return records, PaginationCursor(token=token, has_more=has_more)
