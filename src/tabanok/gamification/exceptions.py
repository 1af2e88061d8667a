"""Domain errors raised by the gamification core.

Every operation surfaces failures to its caller as one of four families:

- ``NotFoundError``: a referenced user, reward definition, award record or
  level entry does not exist. Terminal for the call.
- ``InvalidStateError``: the requested transition is not allowed from the
  record's current state (already consumed, expired, already awarded,
  offer unavailable). The caller should re-query.
- ``RewardValidationError``: the core refused data that would break one of
  its invariants (payload tag disagreeing with the reward type, malformed
  limited-offer window).
- ``PersistenceError``: the store rejected a write. The surrounding
  transaction has been rolled back in full.

The HTTP adapter maps these onto 404 / 400 / 422 / 500.
"""

from __future__ import annotations


class GamificationError(Exception):
    """Base class for all gamification core errors."""

    error_code = "gamification_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# --- NotFound ---


class NotFoundError(GamificationError):
    error_code = "not_found"


class UserNotFoundError(NotFoundError):
    error_code = "user_not_found"

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User with ID {user_id} not found")
        self.user_id = user_id


class RewardNotFoundError(NotFoundError):
    error_code = "reward_not_found"

    def __init__(self, reward_id: str, *, inactive: bool = False) -> None:
        detail = "is not active" if inactive else "not found"
        super().__init__(f"Reward with ID {reward_id} {detail}")
        self.reward_id = reward_id


class AwardNotFoundError(NotFoundError):
    error_code = "award_not_found"

    def __init__(self, user_id: str, reward_id: str) -> None:
        super().__init__(f"User reward {reward_id} not found for user {user_id}")
        self.user_id = user_id
        self.reward_id = reward_id


class LevelEntryNotFoundError(NotFoundError):
    error_code = "level_not_found"

    def __init__(self, user_id: str) -> None:
        super().__init__(f"No level entry for user {user_id}")
        self.user_id = user_id


# --- InvalidState ---


class InvalidStateError(GamificationError):
    error_code = "invalid_state"


class RewardAlreadyConsumedError(InvalidStateError):
    error_code = "reward_already_consumed"

    def __init__(self, user_id: str, reward_id: str) -> None:
        super().__init__("Reward already consumed")
        self.user_id = user_id
        self.reward_id = reward_id


class RewardExpiredError(InvalidStateError):
    error_code = "reward_expired"

    def __init__(self, user_id: str, reward_id: str) -> None:
        super().__init__("Reward has expired")
        self.user_id = user_id
        self.reward_id = reward_id


class RewardAlreadyAwardedError(InvalidStateError):
    error_code = "reward_already_awarded"

    def __init__(self, user_id: str, reward_id: str, status: str) -> None:
        super().__init__(f"User {user_id} already holds reward {reward_id} ({status})")
        self.user_id = user_id
        self.reward_id = reward_id
        self.status = status


class RewardUnavailableError(InvalidStateError):
    """Limited offer outside its validity window or out of stock."""

    error_code = "reward_unavailable"


# --- Validation / persistence ---


class RewardValidationError(GamificationError, ValueError):
    error_code = "validation_error"


class PersistenceError(GamificationError):
    error_code = "persistence_error"
