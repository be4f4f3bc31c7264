"""SRS core: policy, errors and time helpers.

The calculator, selector and ordering modules depend on
cadence.models.card_state and are imported from their own modules.
"""

from .errors import (
    CardStateNotFoundError,
    ConfigError,
    InvalidResponseError,
    InvalidStateError,
    SchedulingError,
    StaleCardStateError,
    StorageError,
)
from .policy import SchedulingPolicy, get_policy, load_policy
from .time import (
    utc_now,
    normalize_utc,
    utc_datetime_to_iso_z,
    parse_iso_z,
    add_minutes,
    add_days,
)

__all__ = [
    "CardStateNotFoundError",
    "ConfigError",
    "InvalidResponseError",
    "InvalidStateError",
    "SchedulingError",
    "StaleCardStateError",
    "StorageError",
    "SchedulingPolicy",
    "get_policy",
    "load_policy",
    "utc_now",
    "normalize_utc",
    "utc_datetime_to_iso_z",
    "parse_iso_z",
    "add_minutes",
    "add_days",
]
