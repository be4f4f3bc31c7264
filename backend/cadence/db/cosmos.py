"""
Cosmos DB access for card state persistence.

One database holds a single card state container partitioned by /learnerId.
Connection mode is chosen from the environment:
- COSMOS_EMULATOR=true connects to the local emulator with its published key
- otherwise COSMOS_ENDPOINT is used with DefaultAzureCredential
  (Managed Identity in Azure, `az login` locally)

Proxies are created lazily on first use and reused until close_client().
"""

import os
import logging
from functools import lru_cache
from pydantic import BaseModel
from azure.cosmos import CosmosClient, DatabaseProxy, ContainerProxy
from azure.core.exceptions import AzureError
from azure.identity import DefaultAzureCredential

logger = logging.getLogger(__name__)

# Cosmos DB Emulator well-known key (public, not a secret)
# https://learn.microsoft.com/en-us/azure/cosmos-db/emulator#authentication
EMULATOR_KEY = "C2y6yDjf5/R+ob0N8A7Cgv30VRDJIWEHLM+4QDU5DE2nQ9nDuVTqobD4b8mGGyPMbIZnqyMsEcaGQy67XIw/Jw=="
EMULATOR_ENDPOINT = "https://localhost:8081"


class CosmosDBSettings(BaseModel):
    """Where card states are stored."""

    endpoint: str = ""
    database_name: str = "cadence"
    card_states_container: str = "card_states"
    use_emulator: bool = False

    @classmethod
    def from_env(cls) -> "CosmosDBSettings":
        return cls(
            endpoint=os.getenv("COSMOS_ENDPOINT", ""),
            database_name=os.getenv("COSMOS_DB_NAME", "cadence"),
            card_states_container=os.getenv("COSMOS_CARD_STATES_CONTAINER", "card_states"),
            use_emulator=os.getenv("COSMOS_EMULATOR", "false").lower() == "true",
        )

    @property
    def account_url(self) -> str:
        return EMULATOR_ENDPOINT if self.use_emulator else self.endpoint

    def is_configured(self) -> bool:
        """True when there is an account to connect to."""
        return bool(self.account_url)


@lru_cache()
def get_settings() -> CosmosDBSettings:
    """Get cached Cosmos DB settings."""
    return CosmosDBSettings.from_env()


_client: CosmosClient | None = None
_database: DatabaseProxy | None = None
_card_states: ContainerProxy | None = None


def get_client() -> CosmosClient:
    """Return the shared client, creating it on first call.

    Raises:
        RuntimeError: If neither COSMOS_ENDPOINT nor COSMOS_EMULATOR is set
    """
    global _client
    if _client is not None:
        return _client

    settings = get_settings()
    if not settings.is_configured():
        raise RuntimeError(
            "Cosmos DB is not configured. "
            "Set COSMOS_ENDPOINT, or COSMOS_EMULATOR=true for the local emulator."
        )

    if settings.use_emulator:
        logger.info("Connecting to Cosmos DB Emulator at %s", settings.account_url)
        # Emulator serves a self-signed certificate
        _client = CosmosClient(settings.account_url, credential=EMULATOR_KEY, connection_verify=False)
    else:
        logger.info("Connecting to Cosmos DB at %s with DefaultAzureCredential", settings.account_url)
        _client = CosmosClient(settings.account_url, credential=DefaultAzureCredential())
    return _client


def get_database() -> DatabaseProxy:
    global _database
    if _database is None:
        _database = get_client().get_database_client(get_settings().database_name)
    return _database


def get_card_states_container() -> ContainerProxy:
    """Return the container proxy holding card state documents."""
    global _card_states
    if _card_states is None:
        _card_states = get_database().get_container_client(get_settings().card_states_container)
    return _card_states


def verify_connection() -> bool:
    """Read the database properties; False if unconfigured or unreachable."""
    if not get_settings().is_configured():
        return False
    try:
        get_database().read()
    except AzureError as e:
        logger.warning("Cosmos DB connection check failed: %s", e)
        return False
    return True


def close_client():
    """Forget the cached proxies so the next call reconnects."""
    global _client, _database, _card_states
    _client = None
    _database = None
    _card_states = None
