"""Tests for the command-line interface."""

import argparse
import json
import sys
import types
from dataclasses import dataclass, field

import pytest

from relmap import cli
from relmap.config import Config, DatabaseConfig
from relmap.mapping.relationships import RelationshipRegistry
from relmap.persistence.storage import RowStore

registry = RelationshipRegistry()


@registry.record
@dataclass
class Shelf:
    id: int = 0
    label: str = ""
    crates: list["Crate"] = field(default_factory=list)


@registry.belongs_to(Shelf, through="id", foreign_key="shelf_id")
@dataclass
class Crate:
    id: int = 0
    weight: float = 0.0


@pytest.fixture
def models_module(monkeypatch):
    module = types.ModuleType("fake_models")
    module.registry = registry
    monkeypatch.setitem(sys.modules, "fake_models", module)
    return "fake_models"


@pytest.fixture
def config(temp_db):
    return Config(database=DatabaseConfig(url=f"sqlite:///{temp_db}"))


class TestLoadRegistry:
    def test_returns_registry(self, models_module):
        assert cli.load_registry(models_module) is registry

    def test_module_without_registry(self, monkeypatch):
        monkeypatch.setitem(sys.modules, "empty_models", types.ModuleType("empty_models"))
        with pytest.raises(SystemExit):
            cli.load_registry("empty_models")


class TestCommands:
    def test_tables(self, models_module, capsys):
        assert cli.cmd_tables(argparse.Namespace(models=models_module)) == 0
        out = capsys.readouterr().out
        assert "CREATE TABLE shelf" in out
        assert "CREATE TABLE crate" in out
        assert "shelf_id" in out

    def test_create_and_dump(self, models_module, config, capsys):
        args = argparse.Namespace(models=models_module, config_obj=config)
        assert cli.cmd_create(args) == 0

        repo = cli.create_repository(config, registry)
        repo.insert(Shelf(label="top", crates=[Crate(weight=2.5)]))
        capsys.readouterr()

        args = argparse.Namespace(models=models_module, config_obj=config, type="Shelf", limit=None)
        assert cli.cmd_dump(args) == 0
        records = json.loads(capsys.readouterr().out)
        assert records[0]["label"] == "top"
        assert records[0]["crates"][0]["weight"] == 2.5

    def test_dump_limit_applied_to_query(self, models_module, config, capsys, monkeypatch):
        args = argparse.Namespace(models=models_module, config_obj=config)
        cli.cmd_create(args)
        repo = cli.create_repository(config, registry)
        for label in ("a", "b", "c"):
            repo.insert(Shelf(label=label))
        capsys.readouterr()

        limits = []
        query_rows = RowStore.query_rows

        def recording_query_rows(self, table, predicate=None, limit=None):
            limits.append((table.name, limit))
            return query_rows(self, table, predicate, limit)

        monkeypatch.setattr(RowStore, "query_rows", recording_query_rows)
        args = argparse.Namespace(models=models_module, config_obj=config, type="Shelf", limit=1)
        assert cli.cmd_dump(args) == 0
        assert len(json.loads(capsys.readouterr().out)) == 1
        assert limits == [("shelf", 1)]

    def test_dump_unknown_type(self, models_module, config, capsys):
        args = argparse.Namespace(models=models_module, config_obj=config, type="Pallet", limit=None)
        assert cli.cmd_dump(args) == 1
        assert "unknown record type 'Pallet'" in capsys.readouterr().out
