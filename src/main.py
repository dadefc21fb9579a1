"""Entrypoint: configure logging and serve the API with uvicorn."""

import logging

import uvicorn

from src.config import get_config

# Azure SDK HTTP pipeline logs every request at INFO
NOISY_LOGGERS = ("azure.core.pipeline.policies.http_logging_policy", "azure.cosmos", "uvicorn.access")


def configure_logging(level: str) -> None:
    """Configure root logging with the given level name."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def main() -> None:
    config = get_config()
    configure_logging(config.logging.level)
    uvicorn.run("src.api:app", host="0.0.0.0", port=8000, log_level=config.logging.level.lower())


if __name__ == "__main__":
    main()
