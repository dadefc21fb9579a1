"""Configuration module for the product catalog service.

Loads settings from environment-specific config files:
- APP_ENV=dev  → config_dev.yaml (local emulators)
- Default      → config.yaml

Secrets (Cosmos DB key, Blob Storage connection string) are loaded from .env.
Fails fast with clear error messages if required configuration is missing.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _get_project_root() -> Path:
    """Get the project root directory (where config.yaml lives)."""
    # Navigate from src/config/ up to project root
    return Path(__file__).parent.parent.parent


def _get_config_filename() -> str:
    """Get config filename based on APP_ENV environment variable.

    Returns:
        Config filename:
        - APP_ENV=dev  → config_dev.yaml
        - Default      → config.yaml
    """
    app_env = os.environ.get("APP_ENV", "").lower()

    if app_env == "dev":
        return "config_dev.yaml"
    else:
        return "config.yaml"


def _load_yaml_config() -> dict:
    """Load configuration from environment-specific config file."""
    config_filename = _get_config_filename()
    config_path = _get_project_root() / config_filename

    if not config_path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}. "
            f"Set APP_ENV to 'dev', or create {config_filename}."
        )

    with open(config_path, "r") as f:
        return yaml.safe_load(f) or {}


def _get_required_env(key: str) -> str:
    """Get required environment variable or raise ConfigurationError."""
    value = os.environ.get(key)
    if not value:
        raise ConfigurationError(
            f"Required environment variable '{key}' is not set. "
            f"Please add it to your .env file."
        )
    return value


@dataclass(frozen=True)
class CosmosDBConfig:
    """Azure Cosmos DB configuration for the product container."""
    endpoint: str
    key: str
    database_name: str
    container_name: str
    partition_key_path: str


@dataclass(frozen=True)
class BlobStorageConfig:
    """Azure Blob Storage configuration for product images."""
    connection_string: str
    container_name: str


@dataclass(frozen=True)
class QueryConfig:
    """Pagination defaults for list queries."""
    default_limit: int
    max_limit: int


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""
    level: str


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration container."""
    cosmosdb: CosmosDBConfig
    blob_storage: BlobStorageConfig
    query: QueryConfig
    logging: LoggingConfig


def load_config() -> AppConfig:
    """
    Load and validate all application configuration.

    Loads from the YAML config file for non-sensitive settings and .env for
    secrets. Fails fast if required configuration is missing.

    Returns:
        AppConfig: Validated application configuration.

    Raises:
        ConfigurationError: If required configuration is missing or invalid.
    """
    # Load environment variables from .env file
    load_dotenv()

    yaml_config = _load_yaml_config()

    cosmosdb_section = yaml_config.get("cosmosdb", {})
    cosmosdb_config = CosmosDBConfig(
        endpoint=cosmosdb_section.get("endpoint") or _get_required_env("COSMOSDB_ENDPOINT"),
        key=_get_required_env("COSMOSDB_KEY"),
        database_name=cosmosdb_section.get("database_name", "catalog"),
        container_name=cosmosdb_section.get("container_name", "products"),
        partition_key_path=cosmosdb_section.get("partition_key_path", "/id"),
    )

    blob_section = yaml_config.get("blob_storage", {})
    blob_storage_config = BlobStorageConfig(
        connection_string=_get_required_env("BLOB_STORAGE_CONNECTION_STRING"),
        container_name=blob_section.get("container_name", "product-images"),
    )

    query_section = yaml_config.get("query", {})
    query_config = QueryConfig(
        default_limit=int(query_section.get("default_limit", 10)),
        max_limit=int(query_section.get("max_limit", 100)),
    )
    if query_config.default_limit < 1 or query_config.max_limit < query_config.default_limit:
        raise ConfigurationError(
            f"Invalid query limits: default_limit={query_config.default_limit}, "
            f"max_limit={query_config.max_limit}"
        )

    logging_section = yaml_config.get("logging", {})
    logging_config = LoggingConfig(
        level=str(logging_section.get("level", "INFO")).upper(),
    )

    return AppConfig(
        cosmosdb=cosmosdb_config,
        blob_storage=blob_storage_config,
        query=query_config,
        logging=logging_config,
    )


# Module-level singleton for convenience
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get the application configuration singleton.

    Lazy-loads configuration on first access.
    Config file is selected based on APP_ENV environment variable.

    Returns:
        AppConfig: Application configuration.

    Raises:
        ConfigurationError: If required configuration is missing.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def get_environment() -> str:
    """Get current environment name.

    Returns:
        'dev' or 'default' based on APP_ENV.
    """
    app_env = os.environ.get("APP_ENV", "").lower()
    return "dev" if app_env == "dev" else "default"


def reset_config() -> None:
    """Reset the config singleton. Useful for testing."""
    global _config
    _config = None
