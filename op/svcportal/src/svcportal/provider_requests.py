# provider_requests.py
"""Admin review of provider requests.

Each request moves ``pending -> approved`` or ``pending -> rejected`` and then
stays put. The local list is a read replica: ``fetch_requests`` replaces it
wholesale, and ``decide`` changes one entry only after the server accepted the
new status.
"""
import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

import pydantic

from .dispatcher import Dispatcher, unwrap
from .errors import ApiError
from .models import Decision, ProviderRequest, StatusChange
from .store import Store

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _created_key(req: ProviderRequest) -> datetime:
    ts = req.created_at
    if ts is None:
        return _EPOCH
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class ProviderRequestWorkflow(Store):

    def __init__(self, dispatcher: Dispatcher):
        super().__init__()
        self.dispatcher = dispatcher
        self.requests: List[ProviderRequest] = []
        self.loading = False
        self.error: Optional[str] = None
        self._in_flight: Set[str] = set()

    async def fetch_requests(self) -> List[ProviderRequest]:
        self._set(loading=True, error=None)
        try:
            body = unwrap(await self.dispatcher.get("/provider-requests"))
            requests = [ProviderRequest.model_validate(r) for r in (body or [])]
        except ApiError as e:
            self._set(loading=False, error=e.message or "Error fetching requests")
            return self.requests
        except pydantic.ValidationError as e:
            logger.error("unreadable provider request list: %s", e)
            self._set(loading=False, error="Error fetching requests")
            return self.requests
        self._set(requests=requests, loading=False)
        return requests

    async def decide(self, request_id: int | str, decision: Decision | str) -> bool:
        """Approve or reject one request; True once the server has accepted it.

        A second call for an id whose first call is still in flight is refused
        without a network call.
        """
        decision = Decision(decision)
        key = str(request_id)
        if key in self._in_flight:
            logger.info("decision for provider request %s already in flight, ignoring", request_id)
            return False

        change = StatusChange(status=decision.target_status)
        self._in_flight.add(key)
        self._set(loading=True, error=None)
        failure: Optional[ApiError] = None
        try:
            await self.dispatcher.post(
                f"/provider-requests/{request_id}/handle", json=change.model_dump(),
            )
        except ApiError as e:
            failure = e
        finally:
            self._in_flight.discard(key)

        if failure is not None:
            self._set(loading=bool(self._in_flight),
                      error=failure.message or f"Failed to {decision.value} request")
            return False
        self._set(requests=self._with_status(key, change.status), loading=bool(self._in_flight))
        logger.info("provider request %s %s", request_id, change.status)
        return True

    def _with_status(self, key: str, status: str) -> List[ProviderRequest]:
        return [
            r.model_copy(update={"status": status}) if str(r.id) == key else r
            for r in self.requests
        ]

    def get(self, request_id: int | str) -> Optional[ProviderRequest]:
        key = str(request_id)
        for r in self.requests:
            if str(r.id) == key:
                return r
        return None

    def is_pending_decision(self, request_id: int | str) -> bool:
        return str(request_id) in self._in_flight

    def recent_pending(self, limit: int | None = None) -> List[ProviderRequest]:
        """Pending requests, newest first; equal timestamps keep backend order."""
        pending = [r for r in self.requests if r.status == "pending"]
        pending = sorted(pending, key=_created_key, reverse=True)
        return pending if limit is None else pending[:limit]

    def counts(self) -> Dict[str, int]:
        counts = Counter(r.status for r in self.requests)
        return {status: counts.get(status, 0) for status in ("pending", "approved", "rejected")}
