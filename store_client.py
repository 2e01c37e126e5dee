# machine_efficiency/store_client.py
"""Remote spreadsheet store access and response normalization"""
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
import json
import logging
import time

import requests

from config import store_config

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for failures talking to the remote store"""


class StoreTransportError(StoreError):
    """Store could not be reached"""


class StoreStatusError(StoreError):
    """Store answered with a non-2xx status"""
    def __init__(self, status_code: int, reason: str = ''):
        super().__init__(f"Google Sheets API error: {status_code} {reason}".strip())
        self.status_code = status_code


class StoreResponseError(StoreError):
    """Store answered with a body that is not valid JSON"""


class StoreDeclaredFailure(StoreError):
    """Store answered with success: false"""


@dataclass
class StoreEnvelope:
    """Normalized store response. Callers never branch on the raw shape."""
    success: bool
    data: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> 'StoreEnvelope':
        if not isinstance(payload, dict):
            raise StoreResponseError("Unexpected response shape from Google Apps Script")

        # getUsers answers with a bare {users: [...]}
        if 'users' in payload and 'success' not in payload:
            rows = payload.get('users') or []
            return cls(success=True, data=[r for r in rows if isinstance(r, dict)])

        rows = payload.get('data') or []
        if not isinstance(rows, list):
            rows = []
        return cls(
            success=bool(payload.get('success')),
            data=[r for r in rows if isinstance(r, dict)],
            error=payload.get('error'),
            message=payload.get('message'),
        )

    def raise_for_failure(self, default_error: str) -> 'StoreEnvelope':
        if not self.success:
            raise StoreDeclaredFailure(self.error or default_error)
        return self

    def to_dict(self) -> Dict[str, Any]:
        result = {"success": self.success, "data": self.data, "count": len(self.data)}
        if self.error:
            result["error"] = self.error
        if self.message:
            result["message"] = self.message
        return result


def parse_body(response: requests.Response, assume_success: bool = False) -> Any:
    """Parse a store body as JSON whatever its content type.

    Apps Script sometimes answers text/html. On POST an unparseable body
    counts as success.
    """
    content_type = response.headers.get('content-type', '')
    text = response.text
    if 'application/json' not in content_type:
        logger.info(f"Raw store response (first 200 chars): {text[:200]}")
    try:
        return json.loads(text)
    except ValueError as e:
        if assume_success:
            logger.warning("Could not parse store response as JSON, assuming success")
            return {"success": True, "message": "Data submitted successfully"}
        logger.error(f"Failed to parse store response as JSON: {e}")
        raise StoreResponseError("Invalid JSON response from Google Apps Script")


class SheetStoreClient:
    """Thin client for the Apps Script endpoint backing the spreadsheet"""

    def __init__(self, url: str, timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def _send(self, method: str, **kwargs) -> requests.Response:
        headers = {'Accept': 'application/json', 'Content-Type': 'application/json'}
        try:
            response = self.session.request(method, self.url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Store {method} failed: {e}")
            raise StoreTransportError(f"Could not reach Google Sheets: {e}") from e

        logger.info(f"Google Sheets {method} response status: {response.status_code}")
        if not response.ok:
            raise StoreStatusError(response.status_code, response.reason or '')
        return response

    def get(self, action: str) -> StoreEnvelope:
        """Run a named list action against the store"""
        response = self._send('GET', params={'action': action, 'timestamp': int(time.time() * 1000)})
        envelope = StoreEnvelope.from_payload(parse_body(response))
        logger.info(
            f"{action} fetched: success={envelope.success}, "
            f"records={len(envelope.data)}, error={bool(envelope.error)}"
        )
        return envelope

    def post(self, action: str, data: List[Dict[str, Any]]) -> StoreEnvelope:
        """Send an append-style action with a list of row objects"""
        response = self._send('POST', data=json.dumps({'action': action, 'data': data}))
        envelope = StoreEnvelope.from_payload(parse_body(response, assume_success=True))
        logger.info(f"{action} posted: success={envelope.success}, message={envelope.message or 'No message'}")
        return envelope

    # Named operations
    def list_machines(self) -> StoreEnvelope:
        return self.get(store_config.actions['machines'])

    def list_master(self) -> StoreEnvelope:
        return self.get(store_config.actions['master'])

    def list_records(self) -> StoreEnvelope:
        return self.get(store_config.actions['records'])

    def list_users(self) -> StoreEnvelope:
        return self.get(store_config.actions['users'])

    def append_records(self, rows: List[Dict[str, Any]]) -> StoreEnvelope:
        return self.post(store_config.actions['save_records'], rows)


# Shared client, one HTTP session for the process
STORE = SheetStoreClient(store_config.url, store_config.timeout)
logger.info(f"Store client initialized for {store_config.url}")


def get_store_client() -> SheetStoreClient:
    """FastAPI dependency returning the shared store client"""
    return STORE
