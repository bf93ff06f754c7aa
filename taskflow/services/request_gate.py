"""Supersede-by-latest tracking for report requests."""
import itertools
from typing import Optional


class LatestRequestGate:
    """
    Remember the newest report request per client key.

    A client (for example one browser tab) that changes its time range
    while a report is still loading starts a new request under the same
    key. The older request can then see that it is stale and drop its
    result instead of delivering it.
    """

    def __init__(self):
        self._tokens = itertools.count(1)
        self._latest: dict[str, int] = {}

    def begin(self, key: str) -> int:
        """Register a new request for a key and return its token."""
        token = next(self._tokens)
        self._latest[key] = token
        return token

    def is_current(self, key: str, token: int) -> bool:
        """True if no newer request for the key has begun."""
        return self._latest.get(key) == token

    def finish(self, key: str, token: Optional[int]) -> None:
        """Forget the key once its newest request is done."""
        if token is not None and self.is_current(key, token):
            del self._latest[key]

    def __len__(self) -> int:
        return len(self._latest)
