"""Exceptions raised by the scheduling core and its storage collaborators."""


class SchedulingError(Exception):
    """Base class for all scheduling failures."""

    pass


class ConfigError(SchedulingError):
    """Raised when a scheduling policy is malformed.

    Fatal at load time; a policy is never repaired or defaulted silently.
    """

    pass


class InvalidResponseError(SchedulingError, ValueError):
    """Raised when a learner response is not again/hard/good/easy."""

    def __init__(self, value: object):
        super().__init__(f"Invalid response value: {value!r}")
        self.value = value


class InvalidStateError(SchedulingError):
    """Raised when a stored card state is not one of the known phases.

    The card must be repaired out-of-band before it can be scheduled again.
    """

    def __init__(self, value: object, card_id: str | None = None):
        detail = f"Invalid card state: {value!r}"
        if card_id is not None:
            detail = f"{detail} (card {card_id})"
        super().__init__(detail)
        self.value = value
        self.card_id = card_id


class StorageError(SchedulingError):
    """Raised when the storage collaborator fails to read or write."""

    pass


class StaleCardStateError(StorageError):
    """Raised when a save loses an optimistic concurrency check."""

    pass


class CardStateNotFoundError(SchedulingError):
    """Raised when no card state exists for a (learner, card) pair."""

    pass
