"""Tests for result extraction strategies."""

import pytest

from grader.config import SandboxSettings
from grader.errors import ArtifactNotFoundError, EngineError
from grader.sandbox.extractor import Extractor, LogExtractor, ReportExtractor, make_extractor


@pytest.fixture
def started(engine, catalog):
    from grader.sandbox.archive import pack
    from grader.sandbox.vfs import assemble

    engine.build(pack(assemble(catalog, "sum", b"code")), "t", "Dockerfile")
    handle = engine.create("t")
    engine.start(handle)
    return handle


def test_log_extractor_returns_combined_output(engine, started):
    assert LogExtractor().extract(engine, started) == b"ran: code"
    assert LogExtractor.content_type.startswith("text/plain")


def test_report_extractor_unwraps_envelope(engine, started):
    engine.files["/app/report.xml"] = b"<testsuites tests=\"1\"/>"
    extractor = ReportExtractor("/app/report.xml")
    assert extractor.extract(engine, started) == b"<testsuites tests=\"1\"/>"
    assert extractor.content_type == "application/xml"


def test_report_extractor_missing_file(engine, started):
    with pytest.raises(ArtifactNotFoundError):
        ReportExtractor("/app/report.xml").extract(engine, started)


def test_report_extractor_propagates_other_engine_errors(engine, started):
    engine.fail["copy_out"] = EngineError(detail="daemon gone")
    with pytest.raises(EngineError):
        ReportExtractor("/app/report.xml").extract(engine, started)


def test_make_extractor_from_settings():
    assert isinstance(make_extractor(SandboxSettings(result_mode="logs")), LogExtractor)
    report = make_extractor(
        SandboxSettings(result_mode="report", report_path="/out/r.json", report_content_type="application/json")
    )
    assert isinstance(report, ReportExtractor)
    assert report.path == "/out/r.json"
    assert report.content_type == "application/json"


def test_extractor_requires_extract():
    with pytest.raises(TypeError):
        Extractor()

    class Incomplete(Extractor):
        content_type = "text/plain"

    with pytest.raises(TypeError):
        Incomplete()
