"""Result extraction strategies for terminated execution units."""

import abc

from grader.config import SandboxSettings
from grader.errors import ArtifactNotFoundError, EngineError
from grader.sandbox.archive import unwrap_single
from grader.sandbox.engine import Engine


class Extractor(abc.ABC):
    content_type = "application/octet-stream"

    @abc.abstractmethod
    def extract(self, engine: Engine, handle: str) -> bytes: ...


class LogExtractor(Extractor):
    """Use the unit's combined stdout/stderr as the result."""

    content_type = "text/plain; charset=utf-8"

    def extract(self, engine: Engine, handle: str) -> bytes:
        return engine.logs(handle)


class ReportExtractor(Extractor):
    """Copy a single report file out of the unit and strip its tar envelope."""

    def __init__(self, path: str, content_type: str = "application/xml") -> None:
        self.path = path
        self.content_type = content_type

    def extract(self, engine: Engine, handle: str) -> bytes:
        try:
            envelope = engine.copy_out(handle, self.path)
        except EngineError as e:
            if e.error_code == "ARTIFACT_MISSING":
                raise ArtifactNotFoundError(f"{self.path} not found in unit {handle}") from e
            raise
        return unwrap_single(envelope)


def make_extractor(settings: SandboxSettings) -> Extractor:
    if settings.result_mode == "report":
        return ReportExtractor(settings.report_path, settings.report_content_type)
    return LogExtractor()
