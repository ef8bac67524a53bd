"""Configuration management for relmap."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from sqlalchemy import create_engine

from .mapping.relationships import RelationshipRegistry
from .persistence.repository import RecordRepository
from .persistence.storage import RowStore
from .persistence.tables import build_tables

logger = logging.getLogger(__name__)


@dataclass
class DatabaseConfig:
    """Relational store configuration."""

    # Any synchronous SQLAlchemy URL
    url: str = "sqlite:///./data/relmap.db"
    echo: bool = False  # log every SQL statement


@dataclass
class MappingConfig:
    """Record mapping configuration."""

    # Name of the primary identity field on record types
    identity_field: str = "id"
    # Create missing tables when a repository is built
    create_tables: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


@dataclass
class Config:
    """Main configuration container."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    mapping: MappingConfig = field(default_factory=MappingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to config file. Defaults to config/default.yaml

    Returns:
        Populated Config dataclass
    """
    if config_path is None:
        # Look for config in standard locations
        candidates = [
            Path("config/default.yaml"),
            Path(__file__).parent.parent / "config" / "default.yaml",
        ]
        for candidate in candidates:
            if candidate.exists():
                config_path = str(candidate)
                break

    config = Config()

    if config_path and Path(config_path).exists():
        with open(config_path) as f:
            data = yaml.safe_load(f)

        if data:
            if "database" in data:
                config.database = DatabaseConfig(**data["database"])
            if "mapping" in data:
                config.mapping = MappingConfig(**data["mapping"])
            if "logging" in data:
                config.logging = LoggingConfig(**data["logging"])

    # Environment variable overrides
    if os.environ.get("RELMAP_DB_URL"):
        config.database.url = os.environ["RELMAP_DB_URL"]
    if os.environ.get("RELMAP_DB_ECHO"):
        config.database.echo = os.environ["RELMAP_DB_ECHO"].lower() == "true"
    if os.environ.get("RELMAP_IDENTITY_FIELD"):
        config.mapping.identity_field = os.environ["RELMAP_IDENTITY_FIELD"]
    if os.environ.get("RELMAP_LOG_LEVEL"):
        config.logging.level = os.environ["RELMAP_LOG_LEVEL"]
    if os.environ.get("RELMAP_LOG_FILE"):
        config.logging.file = os.environ["RELMAP_LOG_FILE"]

    return config


def setup_logging(config: LoggingConfig) -> None:
    """
    Configure logging based on configuration.

    Args:
        config: Logging configuration
    """
    level = getattr(logging, config.level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if config.file:
        # Ensure log directory exists
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(config.file))

    logging.basicConfig(
        level=level,
        format=config.format,
        handlers=handlers,
    )

    # SQL echo is controlled by DatabaseConfig.echo
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logger.info(f"Logging configured at level {config.level}")


def create_repository(config: Config, registry: RelationshipRegistry) -> RecordRepository:
    """Build engine, tables, row store and repository for a registry.

    The registry's identity field must match ``config.mapping``.
    """
    if registry.identity_field != config.mapping.identity_field:
        raise ValueError(
            f"Registry identity field '{registry.identity_field}' does not match "
            f"configured '{config.mapping.identity_field}'"
        )

    if config.database.url.startswith("sqlite:///") and not config.database.url.endswith(":memory:"):
        Path(config.database.url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(config.database.url, echo=config.database.echo)
    store = RowStore(engine, build_tables(registry))
    repo = RecordRepository(store, registry)
    if config.mapping.create_tables:
        repo.create_tables()
    return repo
