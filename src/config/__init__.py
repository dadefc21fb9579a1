"""Configuration module."""

from src.config.configuration import (
    AppConfig,
    BlobStorageConfig,
    ConfigurationError,
    CosmosDBConfig,
    LoggingConfig,
    QueryConfig,
    get_config,
    get_environment,
    load_config,
    reset_config,
)

__all__ = [
    "AppConfig",
    "BlobStorageConfig",
    "ConfigurationError",
    "CosmosDBConfig",
    "LoggingConfig",
    "QueryConfig",
    "get_config",
    "get_environment",
    "load_config",
    "reset_config",
]
