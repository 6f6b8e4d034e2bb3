"""
hrms_auth.flows.sequence

Monotonic request tickets for one flow instance.

Responsibilities:
- Tag each outgoing request with a ticket.
- Tell a resolving request whether it is still the latest one for its flow.
"""

from __future__ import annotations


class RequestSequence:
    def __init__(self) -> None:
        self._latest = 0

    def issue(self) -> int:
        self._latest += 1
        return self._latest

    def invalidate(self) -> None:
        # Cancel/teardown: every outstanding ticket becomes stale.
        self._latest += 1

    def is_current(self, ticket: int) -> bool:
        return ticket == self._latest
