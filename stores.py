"""Statement and learner stores backed by the REST persistence API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

import requests
from pydantic import ValidationError

from schemas import LearnerProfile

LOGGER = logging.getLogger("learnsim.stores")

_JSON_HEADERS = {
    "Content-Type": "application/json",
    "X-Experience-API-Version": "1.0.3",
}


class TransportError(RuntimeError):
    """Raised when the persistence API cannot be reached or rejects a request."""


class StatementSink(Protocol):
    def save_bulk_statements(self, statements: Sequence[Dict[str, Any]]) -> None: ...


class StatementSource(Protocol):
    def get_statements(self) -> List[Dict[str, Any]]: ...


class InMemoryStatementStore:
    """Sink/source that keeps statements in memory (offline runs and tests)."""

    def __init__(self) -> None:
        self.statements: List[Dict[str, Any]] = []
        self.batches = 0

    def save_bulk_statements(self, statements: Sequence[Dict[str, Any]]) -> None:
        self.statements = list(statements)
        self.batches += 1

    def get_statements(self) -> List[Dict[str, Any]]:
        return list(self.statements)


class _HttpStore:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        auth: Optional[str] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = dict(_JSON_HEADERS)
        if auth:
            self.headers["Authorization"] = auth

    def _request(self, method: str, path: str, *, payload: Any = None) -> requests.Response:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            if method == "POST":
                response = requests.post(url, json=payload, headers=self.headers, timeout=self.timeout)
            else:
                response = requests.get(url, headers=self.headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        if not response.ok:
            raise TransportError(
                f"{method} {url} returned HTTP {response.status_code}: {response.text[:200]}"
            )
        return response


class HttpStatementStore(_HttpStore):
    """``POST/GET {base}/statements``. Bulk writes are all-or-nothing; no retries."""

    def save_bulk_statements(self, statements: Sequence[Dict[str, Any]]) -> None:
        self._request("POST", "statements", payload=list(statements))
        LOGGER.info("Stored %s statements at %s", len(statements), self.base_url)

    def get_statements(self) -> List[Dict[str, Any]]:
        return self._request("GET", "statements").json()


class HttpLearnerStore(_HttpStore):
    """``POST/GET {base}/learners`` in the learner-store wire format."""

    def store_learner_profiles(self, profiles: Sequence[LearnerProfile]) -> Dict[str, Any]:
        response = self._request(
            "POST", "learners", payload=[profile.to_store_dict() for profile in profiles]
        )
        return response.json()

    def get_learner_profiles(self) -> List[LearnerProfile]:
        records = self._request("GET", "learners").json()
        try:
            return [LearnerProfile.model_validate(record) for record in records]
        except ValidationError as exc:
            raise TransportError(f"Learner store returned invalid profiles: {exc}") from exc


class HttpVerbStore(_HttpStore):
    def get_verbs(self) -> List[Dict[str, Any]]:
        return self._request("GET", "verbs").json()


__all__ = [
    "TransportError",
    "StatementSink",
    "StatementSource",
    "InMemoryStatementStore",
    "HttpStatementStore",
    "HttpLearnerStore",
    "HttpVerbStore",
]
