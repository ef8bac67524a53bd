"""Tests for configuration loading and repository wiring."""

import logging
from dataclasses import dataclass

import pytest

from relmap.config import (
    Config,
    DatabaseConfig,
    LoggingConfig,
    MappingConfig,
    create_repository,
    load_config,
    setup_logging,
)
from relmap.mapping.relationships import RelationshipRegistry

registry = RelationshipRegistry()


@registry.record
@dataclass
class Note:
    id: int = 0
    text: str = ""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("RELMAP_DB_URL", "RELMAP_DB_ECHO", "RELMAP_IDENTITY_FIELD", "RELMAP_LOG_LEVEL", "RELMAP_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_defaults(self):
        config = Config()
        assert config.database.url == "sqlite:///./data/relmap.db"
        assert config.database.echo is False
        assert config.mapping.identity_field == "id"
        assert config.mapping.create_tables is True
        assert config.logging.level == "INFO"
        assert config.logging.file is None


class TestLoadConfig:
    def test_yaml_sections(self, tmp_path):
        path = tmp_path / "relmap.yaml"
        path.write_text(
            "database:\n"
            "  url: sqlite:///other.db\n"
            "  echo: true\n"
            "mapping:\n"
            "  identity_field: pk\n"
            "logging:\n"
            "  level: DEBUG\n"
        )
        config = load_config(str(path))
        assert config.database.url == "sqlite:///other.db"
        assert config.database.echo is True
        assert config.mapping.identity_field == "pk"
        assert config.mapping.create_tables is True
        assert config.logging.level == "DEBUG"

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(str(tmp_path / "nope.yaml"))
        assert config.database == DatabaseConfig()
        assert config.mapping == MappingConfig()

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)).logging == LoggingConfig()

    def test_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("RELMAP_DB_URL", "sqlite:///env.db")
        monkeypatch.setenv("RELMAP_DB_ECHO", "TRUE")
        monkeypatch.setenv("RELMAP_IDENTITY_FIELD", "key")
        monkeypatch.setenv("RELMAP_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("RELMAP_LOG_FILE", str(tmp_path / "relmap.log"))

        config = load_config(str(tmp_path / "nope.yaml"))
        assert config.database.url == "sqlite:///env.db"
        assert config.database.echo is True
        assert config.mapping.identity_field == "key"
        assert config.logging.level == "WARNING"
        assert config.logging.file == str(tmp_path / "relmap.log")

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("database:\n  host: localhost\n")
        with pytest.raises(TypeError):
            load_config(str(path))


class TestSetupLogging:
    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "relmap.log"
        setup_logging(LoggingConfig(level="DEBUG", file=str(log_file)))
        assert log_file.parent.exists()
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


class TestCreateRepository:
    def test_creates_tables(self, temp_db):
        config = Config(database=DatabaseConfig(url=f"sqlite:///{temp_db}"))
        repo = create_repository(config, registry)
        note_id = repo.insert(Note(text="hello"))
        assert repo.find_first_where(Note, Note(id=note_id)).text == "hello"

    def test_identity_mismatch(self, temp_db):
        config = Config(
            database=DatabaseConfig(url=f"sqlite:///{temp_db}"),
            mapping=MappingConfig(identity_field="pk"),
        )
        with pytest.raises(ValueError, match="identity field"):
            create_repository(config, registry)
