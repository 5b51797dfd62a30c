"""Error taxonomy for chat-request matchmaking."""

import math
from datetime import timedelta
from typing import Any


class MatchmakingError(Exception):
    """Base class for all matchmaking errors."""


class NotFound(MatchmakingError):
    """Referenced request or user does not exist."""


class IneligibleRequest(MatchmakingError):
    """Receiver's filter (or block list) denies the sender."""

    def __init__(self, reason: str, code: str) -> None:
        super().__init__(reason)
        self.reason = reason
        self.code = code


class CooldownActive(MatchmakingError):
    """Sender already requested this receiver within the cooldown window."""

    def __init__(self, remaining: timedelta) -> None:
        minutes = max(1, math.ceil(remaining.total_seconds() / 60))
        super().__init__(f"You can send another request to this user in {minutes} min.")
        self.remaining = remaining


class ConflictBusy(MatchmakingError):
    """One of the parties is already in an active chat."""

    def __init__(self, message: str = "Your partner is no longer available.", request: Any = None) -> None:
        super().__init__(message)
        self.request = request


class RequestStateConflict(MatchmakingError):
    """Request already reached a terminal status."""

    def __init__(self, request: Any) -> None:
        super().__init__(f"Request {request.id} is already {request.status}")
        self.request = request


class TransientStoreError(MatchmakingError):
    """Persistence layer failed; the caller decides whether to retry."""


class FilterStepInvalid(MatchmakingError):
    """Wizard received an out-of-order or invalid input; the step is repeated."""


class LocationRequired(FilterStepInvalid):
    """Distance filter chosen without a location on the profile."""
