"""Push relay client - HTTP submission of messages to the push service."""

import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from office_tracker.common.constants import PushConstants
from office_tracker.common.exceptions import PushTransportError
from office_tracker.dispatch.schemas import PushMessage

logger = logging.getLogger(__name__)


class PushRelayClient:
    """Submits messages to the push relay and returns its tickets.

    Transport problems (network errors, non-2xx answers, bodies that are not
    a ticket list) raise ``PushTransportError``. Per-message rejections come
    back as ordinary tickets with ``status == "error"``.
    """

    def __init__(
        self,
        relay_url: str = PushConstants.RELAY_URL,
        access_token: Optional[str] = None,
        timeout: float = PushConstants.REQUEST_TIMEOUT_SECONDS,
        chunk_size: int = PushConstants.MAX_MESSAGES_PER_REQUEST,
        session: Optional[requests.Session] = None,
    ):
        if not 1 <= chunk_size <= PushConstants.MAX_MESSAGES_PER_REQUEST:
            raise ValueError(
                f"chunk_size must be between 1 and {PushConstants.MAX_MESSAGES_PER_REQUEST}"
            )
        self.relay_url = relay_url
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
        })
        if access_token:
            self.session.headers["Authorization"] = f"Bearer {access_token}"

    def _post(self, payload: Any) -> Dict[str, Any]:
        try:
            response = self.session.post(self.relay_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise PushTransportError(
                f"Push relay unreachable: {e}",
                details={"error_type": type(e).__name__},
            ) from e

        if not 200 <= response.status_code < 300:
            raise PushTransportError(
                f"Push relay answered HTTP {response.status_code}",
                status_code=response.status_code,
                details={"body": response.text[:500]},
            )

        try:
            body = response.json()
        except ValueError as e:
            raise PushTransportError(
                "Push relay returned a body that is not JSON",
                status_code=response.status_code,
                details={"body": response.text[:500]},
            ) from e

        if not isinstance(body, dict) or "data" not in body:
            raise PushTransportError(
                "Push relay response has no ticket data",
                status_code=response.status_code,
                details={"body": str(body)[:500]},
            )
        return body

    def send(self, message: PushMessage) -> Dict[str, Any]:
        """Submit one message and return its ticket."""
        body = self._post(message.to_payload())
        data = body["data"]
        # A single-message request may be answered with a bare ticket
        if isinstance(data, list):
            if len(data) != 1:
                raise PushTransportError(
                    f"Expected 1 ticket, relay returned {len(data)}",
                    details={"tickets": len(data)},
                )
            data = data[0]
        if not isinstance(data, dict):
            raise PushTransportError("Push relay ticket is not an object")
        return data

    def send_batch(self, messages: Sequence[PushMessage]) -> List[Dict[str, Any]]:
        """Submit messages in relay-sized chunks.

        Returns:
            Tickets in the same order as ``messages``

        Raises:
            PushTransportError: If any chunk fails. Tickets of earlier
                chunks are lost to the caller, so use ``send`` per message
                when per-recipient outcomes matter.
        """
        tickets: List[Dict[str, Any]] = []
        for start in range(0, len(messages), self.chunk_size):
            chunk = messages[start:start + self.chunk_size]
            body = self._post([m.to_payload() for m in chunk])
            data = body["data"]
            if not isinstance(data, list) or len(data) != len(chunk):
                received = len(data) if isinstance(data, list) else 1
                raise PushTransportError(
                    f"Ticket count mismatch: sent {len(chunk)}, received {received}",
                    details={"chunk_start": start},
                )
            tickets.extend(data)
        logger.debug(f"Submitted {len(messages)} messages in chunks of {self.chunk_size}")
        return tickets

    def close(self) -> None:
        self.session.close()
