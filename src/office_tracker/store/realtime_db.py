"""Record store client - REST access to the realtime database.

Paths are slash-separated and map to ``<base_url>/<path>.json``. Reads
return decoded JSON; a missing node reads as ``None``.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from office_tracker.common.constants import StoreConstants
from office_tracker.common.exceptions import RecordStoreError

logger = logging.getLogger(__name__)


class RealtimeDatabaseClient:
    """Path-addressed reads and field writes over HTTP."""

    def __init__(
        self,
        base_url: str,
        auth_token: Optional[str] = None,
        timeout: float = StoreConstants.REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self.auth_token = auth_token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        segments = [quote(s, safe="") for s in path.strip("/").split("/") if s]
        return f"{self.base_url}/{'/'.join(segments)}.json"

    def _params(self) -> Dict[str, str]:
        return {"auth": self.auth_token} if self.auth_token else {}

    def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        url = self._url(path)
        try:
            response = self.session.request(
                method, url, params=self._params(), json=body, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise RecordStoreError(
                f"{method} /{path} failed: {e}",
                details={"path": path, "error_type": type(e).__name__},
            ) from e

        if not 200 <= response.status_code < 300:
            raise RecordStoreError(
                f"{method} /{path} answered HTTP {response.status_code}",
                details={"path": path, "status_code": response.status_code, "body": response.text[:500]},
            )

        try:
            return response.json()
        except ValueError as e:
            raise RecordStoreError(
                f"{method} /{path} returned a body that is not JSON",
                details={"path": path},
            ) from e

    def get(self, path: str) -> Any:
        return self._request("GET", path)

    def fetch_users(self) -> Dict[str, Any]:
        """Full snapshot of ``/users``, keyed by user id."""
        users = self.get(StoreConstants.USERS_PATH)
        if users is None:
            return {}
        if not isinstance(users, dict):
            raise RecordStoreError(
                f"/{StoreConstants.USERS_PATH} is a {type(users).__name__}, expected an object"
            )
        logger.info(f"Fetched {len(users)} user records")
        return users

    def fetch_user(self, user_id: str) -> Optional[Any]:
        """Raw record for one user, or None when it does not exist."""
        return self.get(f"{StoreConstants.USERS_PATH}/{user_id}")

    def update_fields(self, path: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Write the named children of ``path``, leaving siblings alone.

        A ``None`` value deletes that child.
        """
        if not fields:
            raise ValueError("fields must not be empty")
        return self._request("PATCH", path, body=fields)

    def close(self) -> None:
        self.session.close()
