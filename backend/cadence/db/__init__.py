"""Database module for Cosmos DB integration."""

from .cosmos import (
    get_client,
    get_database,
    get_card_states_container,
    get_settings,
    verify_connection,
    close_client,
)

__all__ = [
    "get_client",
    "get_database",
    "get_card_states_container",
    "get_settings",
    "verify_connection",
    "close_client",
]
