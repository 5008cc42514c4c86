# connect_db.py - settings from the environment and client construction
import logging
import os
from typing import Callable, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pymongo import MongoClient
from pymongo.errors import ConfigurationError as PyMongoConfigurationError
from pymongo.errors import ConnectionFailure, OperationFailure

from plp_bookstore.errors import ConfigurationError, ConnectError

logger = logging.getLogger(__name__)

DEFAULT_DB_NAME = "plp_bookstore"
DEFAULT_COLLECTION_NAME = "books"

# env var -> Settings field
ENV_VARS = {
    "MONGODB_URI": "mongodb_uri",
    "DB_NAME": "db_name",
    "COLLECTION_NAME": "collection_name",
    "MONGO_SERVER_SELECTION_TIMEOUT_MS": "server_selection_timeout_ms",
    "MONGO_OPERATION_TIMEOUT": "operation_timeout",
    "MONGO_TLS_ALLOW_INVALID_CERTIFICATES": "tls_allow_invalid_certificates",
}


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mongodb_uri: str = Field(min_length=1)
    db_name: str = Field(default=DEFAULT_DB_NAME, min_length=1)
    collection_name: str = Field(default=DEFAULT_COLLECTION_NAME, min_length=1)
    server_selection_timeout_ms: int = Field(default=5000, gt=0)
    operation_timeout: Optional[float] = Field(default=None, gt=0)
    tls_allow_invalid_certificates: bool = False

    def client_options(self) -> dict:
        options = {"serverSelectionTimeoutMS": self.server_selection_timeout_ms}
        if self.tls_allow_invalid_certificates:
            # Development only: self-signed certificates on local clusters
            options["tls"] = True
            options["tlsAllowInvalidCertificates"] = True
        return options


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read settings from the environment.

    A `.env` file in the working directory is loaded first when no explicit
    mapping is given. Blank values count as unset so defaults apply.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    values = {}
    for var, field in ENV_VARS.items():
        raw = environ.get(var)
        if raw is not None and raw.strip():
            values[field] = raw.strip()

    if "mongodb_uri" not in values:
        raise ConfigurationError(
            "MONGODB_URI not found in environment variables. "
            "Make sure you have a .env file with MONGODB_URI defined."
        )

    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def open_client(
    uri: str,
    client_factory: Callable[..., MongoClient] = MongoClient,
    **options,
) -> MongoClient:
    """Create a client and check the server answers a ping.

    The client is closed again if the ping fails.
    """
    try:
        client = client_factory(uri, **options)
    except PyMongoConfigurationError as e:
        raise ConnectError(f"Invalid MongoDB URI or options: {e}", operation="connect") from e

    try:
        client.admin.command("ping")
    except OperationFailure as e:
        client.close()
        raise ConnectError(f"MongoDB rejected the connection: {e}", operation="connect") from e
    except ConnectionFailure as e:
        client.close()
        raise ConnectError(f"Failed to connect to MongoDB: {e}", operation="connect") from e

    logger.info("Connected to MongoDB")
    return client
