"""Tests for the task catalog."""

import pytest

from grader.catalog import TaskCatalog
from grader.config import BUNDLED_ASSETS_DIR
from grader.errors import TaskNotFoundError
from grader.tests.fakes import DOCKERFILE, SUM_HARNESS


class TestLoad:
    def test_directory_task(self, catalog):
        task = catalog.get("sum")
        assert task.id == "sum"
        assert task.harness_source == SUM_HARNESS
        assert task.base_source.startswith(b"export function add")
        assert task.description == "Add two numbers.\n"

    def test_single_file_task_has_no_extras(self, catalog):
        task = catalog.get("legacy")
        assert task.base_source is None
        assert task.description is None

    def test_environment_files(self, catalog):
        assert dict(catalog.environment_files()) == {"Dockerfile": DOCKERFILE}

    def test_ids_sorted(self, catalog):
        assert catalog.ids() == ["legacy", "sum"]
        assert len(catalog) == 2
        assert "sum" in catalog
        assert [t.id for t in catalog] == ["legacy", "sum"]

    def test_directory_without_harness_is_ignored(self, catalog_dir):
        (catalog_dir / "tests" / "empty").mkdir()
        catalog = TaskCatalog.load(catalog_dir)
        assert "empty" not in catalog

    def test_missing_image_dir_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            TaskCatalog.load(tmp_path)

    def test_bundled_assets(self):
        catalog = TaskCatalog.load(BUNDLED_ASSETS_DIR)
        assert "sum" in catalog
        assert "Dockerfile" in catalog.environment_files()


class TestGet:
    def test_unknown_task(self, catalog):
        with pytest.raises(TaskNotFoundError) as exc_info:
            catalog.get("nope")
        assert exc_info.value.task_id == "nope"
        assert exc_info.value.status_code == 404

    @pytest.mark.parametrize("task_id", ["../image", "sum/../sum", "", "a b"])
    def test_invalid_ids_are_misses(self, catalog, task_id):
        with pytest.raises(TaskNotFoundError):
            catalog.get(task_id)

    def test_definitions_are_immutable(self, catalog):
        task = catalog.get("sum")
        with pytest.raises(AttributeError):
            task.harness_source = b""
        with pytest.raises(TypeError):
            catalog.environment_files()["Dockerfile"] = b""
