import os
import sys
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

import pytest
from fastapi.testclient import TestClient

from grader.catalog import TaskCatalog
from grader.config import SandboxSettings, clear_settings_cache
from grader.tests.fakes import DOCKERFILE, SUM_HARNESS, FakeEngine


@pytest.fixture
def catalog_dir(tmp_path):
    (tmp_path / "image").mkdir()
    (tmp_path / "image" / "Dockerfile").write_bytes(DOCKERFILE)
    tests = tmp_path / "tests"
    (tests / "sum").mkdir(parents=True)
    (tests / "sum" / "test.ts").write_bytes(SUM_HARNESS)
    (tests / "sum" / "base.ts").write_text("export function add(a: number, b: number) { return 0; }\n")
    (tests / "sum" / "description.md").write_text("Add two numbers.\n")
    (tests / "legacy.ts").write_text('import { f } from "./code";\n')
    return tmp_path


@pytest.fixture
def catalog(catalog_dir):
    return TaskCatalog.load(catalog_dir)


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def sandbox_settings():
    return SandboxSettings(timeout_sec=5, tag_prefix="grader")


@pytest.fixture
def client(monkeypatch, catalog_dir, engine):
    import grader.lifespan as lifespan
    import grader.main as main

    monkeypatch.setenv("SANDBOX_CATALOG_DIR", str(catalog_dir))
    clear_settings_cache()
    monkeypatch.setattr(lifespan, "init_engine", lambda: engine)

    with TestClient(main.app) as c:
        yield c
    clear_settings_cache()
