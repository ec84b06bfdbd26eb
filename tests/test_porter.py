"""Tests for import/export functionality"""

import json

import pytest
import yaml
from freezegun import freeze_time

from aliasmate.errors import InvalidInputError, NotFoundError
from aliasmate.porter import AliasPorter
from aliasmate.storage import AliasStorage, JsonFileStore


@pytest.fixture
def porter(storage, project_dir):
    storage.set("build", "npm run build", str(project_dir), env={"NODE_ENV": "production"})
    storage.set("test", "npm test", str(project_dir))
    return AliasPorter(storage)


def write_export(path, aliases):
    path.write_text(json.dumps({"exportedAt": "2025-01-01T00:00:00", "version": "1.0", "aliases": aliases}))
    return path


class TestExport:

    @freeze_time("2025-10-24 12:00:00")
    def test_export_to_dict(self, porter, storage):
        data = porter.export_to_dict()

        assert data["exportedAt"] == "2025-10-24T12:00:00"
        assert data["version"] == "1.0"
        assert data["aliases"] == storage.load_raw()

    def test_export_json(self, porter, tmp_path):
        target = tmp_path / "out" / "aliases.json"

        assert porter.export_to_file(target) == 2

        data = json.loads(target.read_text())
        assert set(data["aliases"]) == {"build", "test"}
        assert data["aliases"]["build"]["env"] == {"NODE_ENV": "production"}

    def test_export_yaml(self, porter, tmp_path):
        target = tmp_path / "aliases.yaml"

        porter.export_to_file(target, format="yaml")

        data = yaml.safe_load(target.read_text())
        assert data["aliases"]["test"]["command"] == "npm test"
        assert isinstance(data["aliases"]["test"]["createdAt"], str)


class TestImport:

    def test_round_trip_into_empty_store(self, porter, tmp_path, config_dir):
        target = tmp_path / "aliases.json"
        porter.export_to_file(target)
        fresh = AliasStorage(JsonFileStore(tmp_path / "fresh" / "config.json"))

        summary = AliasPorter(fresh).import_from_file(target)

        assert sorted(summary.imported) == ["build", "test"]
        assert summary.backup_path is None
        assert fresh.load_raw() == porter.storage.load_raw()

    def test_yaml_import(self, porter, tmp_path, project_dir):
        source = tmp_path / "in.yml"
        source.write_text(yaml.safe_dump({"aliases": {"lint": {"command": "ruff .", "directory": str(project_dir)}}}))

        summary = porter.import_from_file(source)

        assert summary.imported == ["lint"]
        assert porter.storage.get("lint").command == "ruff ."

    def test_conflict_skip(self, porter, tmp_path):
        source = write_export(tmp_path / "in.json", {"build": {"command": "make", "directory": "/srv"}})

        summary = porter.import_from_file(source)

        assert summary.skipped == ["build"]
        assert porter.storage.get("build").command == "npm run build"

    def test_conflict_overwrite_creates_backup(self, porter, tmp_path):
        source = write_export(tmp_path / "in.json", {"build": {"command": "make", "directory": "/srv"}})

        summary = porter.import_from_file(source, on_conflict="overwrite")

        assert summary.imported == ["build"]
        assert porter.storage.get("build").command == "make"
        assert summary.backup_path.exists()
        assert json.loads(summary.backup_path.read_text())["build"]["command"] == "npm run build"

    def test_conflict_rename(self, porter, tmp_path):
        porter.storage.set("build_imported", "x", "/srv")
        source = write_export(tmp_path / "in.json", {"build": {"command": "make", "directory": "/srv"}})

        summary = porter.import_from_file(source, on_conflict="rename")

        assert summary.renamed == {"build": "build_imported2"}
        assert porter.storage.get("build_imported2").command == "make"
        assert porter.storage.get("build").command == "npm run build"

    def test_unknown_conflict_action(self, porter, tmp_path):
        source = write_export(tmp_path / "in.json", {})

        with pytest.raises(InvalidInputError):
            porter.import_from_file(source, on_conflict="merge")

    def test_missing_file(self, porter, tmp_path):
        with pytest.raises(NotFoundError):
            porter.import_from_file(tmp_path / "nope.json")

    def test_invalid_json(self, porter, tmp_path):
        source = tmp_path / "bad.json"
        source.write_text("{not json")

        with pytest.raises(InvalidInputError, match="valid JSON"):
            porter.import_from_file(source)

    def test_missing_aliases_key(self, porter, tmp_path):
        source = tmp_path / "bad.json"
        source.write_text(json.dumps({"commands": {}}))

        with pytest.raises(InvalidInputError, match="aliases"):
            porter.import_from_file(source)

    def test_invalid_record_rejects_whole_file(self, porter, tmp_path):
        source = write_export(tmp_path / "in.json", {
            "ok": {"command": "ls", "directory": "/"},
            "broken": {"command": "ls"},
        })

        with pytest.raises(InvalidInputError, match="broken"):
            porter.import_from_file(source)
        assert not porter.storage.exists("ok")

    def test_invalid_name(self, porter, tmp_path):
        source = write_export(tmp_path / "in.json", {"bad name": {"command": "ls", "directory": "/"}})

        with pytest.raises(InvalidInputError):
            porter.import_from_file(source)
