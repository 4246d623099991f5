#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
GraphQL client for the fund backend (navHistory / yieldHistory).
Implements retry logic, error handling, and response parsing.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import requests

from .logging_setup import get_logger
from .models import MetricKind, RawPoint

logger = get_logger(__name__)

NAV_HISTORY_QUERY = """
query GetNavHistory($fundId: String!) {
  navHistory(fundId: $fundId) {
    timestamp
    nav
    source
  }
}
"""

YIELD_HISTORY_QUERY = """
query GetYieldHistory($fundId: String!) {
  fund(id: $fundId) {
    yieldHistory {
      timestamp
      yield
    }
  }
}
"""


class FundHistoryClientError(Exception):
    """Raised when the backend cannot be queried after all retries"""
    pass


@dataclass
class APIResponse:
    """Generic API response wrapper"""
    success: bool
    data: Any = None
    error: Optional[str] = None
    status_code: Optional[int] = None


class FundHistoryClient:
    """Client for the fund dashboard GraphQL API"""

    def __init__(self, endpoint: str, timeout: float = 10.0, retry_attempts: int = 3, retry_backoff: float = 1.0):
        """
        Initialize fund history client

        Args:
            endpoint: GraphQL endpoint URL
            timeout: Request timeout in seconds
            retry_attempts: Number of attempts per query
            retry_backoff: Base backoff time between retries (doubles each retry)
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self.retry_attempts = max(1, int(retry_attempts))
        self.retry_backoff = retry_backoff
        self.session = requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
            'Accept': 'application/json',
            'User-Agent': 'FundTimeline/1.0'
        })

    @classmethod
    def from_settings(cls, data_source) -> "FundHistoryClient":
        return cls(
            endpoint=data_source.endpoint,
            timeout=data_source.timeout,
            retry_attempts=data_source.retry_attempts,
            retry_backoff=data_source.retry_backoff,
        )

    def _make_request(self, query: str, variables: Optional[Dict] = None) -> APIResponse:
        """
        Make GraphQL request with retry logic

        GraphQL-level errors are returned immediately; timeouts, connection
        errors and non-200 responses are retried with exponential backoff.
        """
        payload = {
            'query': query,
            'variables': variables or {}
        }
        last_error = None

        for attempt in range(self.retry_attempts):
            try:
                logger.debug(f"GraphQL request to {self.endpoint} (attempt {attempt + 1}/{self.retry_attempts})")
                response = self.session.post(self.endpoint, json=payload, timeout=self.timeout)

                if response.status_code == 200:
                    data = response.json()
                    if not isinstance(data, dict):
                        error_msg = f"Malformed response body: expected a JSON object, got {type(data).__name__}"
                        logger.error(error_msg)
                        return APIResponse(success=False, error=error_msg, status_code=200)
                    if data.get('errors'):
                        error_msg = '; '.join(
                            err.get('message', 'Unknown GraphQL error') if isinstance(err, dict) else str(err)
                            for err in data['errors']
                        )
                        logger.error(f"GraphQL errors: {error_msg}")
                        return APIResponse(success=False, error=error_msg, status_code=200)
                    payload_data = data.get('data') or {}
                    if not isinstance(payload_data, dict):
                        error_msg = f"Malformed response: 'data' is {type(payload_data).__name__}, not an object"
                        logger.error(error_msg)
                        return APIResponse(success=False, error=error_msg, status_code=200)
                    return APIResponse(success=True, data=payload_data, status_code=200)

                last_error = f"HTTP {response.status_code}: {response.text}"
                logger.warning(f"Request failed: {last_error}")

            except requests.exceptions.Timeout:
                last_error = f"Request timeout after {self.timeout}s"
                logger.warning(f"Attempt {attempt + 1} timed out")

            except requests.exceptions.ConnectionError as e:
                last_error = f"Connection error: {e}"
                logger.warning(f"Attempt {attempt + 1} connection failed")

            except (requests.exceptions.RequestException, ValueError) as e:
                last_error = f"Unexpected error: {e}"
                logger.error(f"Attempt {attempt + 1} failed unexpectedly: {e}")

            if attempt < self.retry_attempts - 1:
                backoff_time = self.retry_backoff * (2 ** attempt)
                logger.debug(f"Retrying in {backoff_time}s...")
                time.sleep(backoff_time)

        logger.error(f"All {self.retry_attempts} attempts failed. Last error: {last_error}")
        return APIResponse(success=False, error=last_error)

    @staticmethod
    def _to_points(rows: Any, metric: MetricKind) -> List[RawPoint]:
        if not isinstance(rows, list):
            return []
        points = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            points.append(RawPoint(
                timestamp=row.get('timestamp'),
                value=row.get(metric.payload_key),
                metric_kind=metric,
                source=row.get('source'),
            ))
        return points

    def fetch_nav_history(self, fund_id: str) -> List[RawPoint]:
        """
        Fetch the NAV history of one fund (newest first, as served)

        Raises:
            FundHistoryClientError: If the query fails after all retries
        """
        response = self._make_request(NAV_HISTORY_QUERY, {'fundId': fund_id})
        if not response.success:
            raise FundHistoryClientError(f"Failed to fetch NAV history for {fund_id}: {response.error}")
        points = self._to_points(response.data.get('navHistory'), MetricKind.NAV)
        logger.debug(f"Fetched {len(points)} NAV points for {fund_id}")
        return points

    def fetch_yield_history(self, fund_id: str) -> List[RawPoint]:
        """
        Fetch the intraday yield history of one fund

        Raises:
            FundHistoryClientError: If the query fails after all retries
        """
        response = self._make_request(YIELD_HISTORY_QUERY, {'fundId': fund_id})
        if not response.success:
            raise FundHistoryClientError(f"Failed to fetch yield history for {fund_id}: {response.error}")
        fund = response.data.get('fund') or {}
        if not isinstance(fund, dict):
            raise FundHistoryClientError(f"Malformed yield history for {fund_id}: 'fund' is not an object")
        points = self._to_points(fund.get('yieldHistory'), MetricKind.YIELD)
        logger.debug(f"Fetched {len(points)} yield points for {fund_id}")
        return points

    def fetch_snapshot(self, fund_id: str) -> Tuple[List[RawPoint], List[RawPoint]]:
        """Both series for one refresh: (nav_points, yield_points)"""
        return self.fetch_nav_history(fund_id), self.fetch_yield_history(fund_id)
