"""Build, run, collect and clean up one execution unit per request.

The lifecycle is linear:

    IDLE -> BUILDING -> CREATED -> RUNNING -> EXITED -> COLLECTED -> REMOVED

Only a catalog miss and a build failure propagate to the caller. Failures
after the build are recorded on the returned ExecutionResult, and the unit
(and, when configured, its image) is removed on every path out of execute().
"""

import logging
import re
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum

from grader.catalog import TaskCatalog
from grader.config import SandboxSettings
from grader.errors import ArtifactNotFoundError, EngineError
from grader.sandbox.archive import pack
from grader.sandbox.engine import Engine
from grader.sandbox.extractor import Extractor
from grader.sandbox.vfs import assemble

logger = logging.getLogger("grader.sandbox")

_TAG_PART_RE = re.compile(r"[^a-z0-9]+")
TAG_PART_MAX = 40


class Stage(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    CREATED = "created"
    RUNNING = "running"
    EXITED = "exited"
    COLLECTED = "collected"
    REMOVED = "removed"


_STAGE_ORDER = list(Stage)


class ExecutionStatus(str, Enum):
    COMPLETED = "completed"
    TIMEOUT = "timeout"
    INFRASTRUCTURE_ERROR = "infrastructure_error"


@dataclass
class ExecutionRequest:
    user_id: str
    task_id: str
    code: bytes | str
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass
class ExecutionUnit:
    tag: str
    image_ref: str | None = None
    handle: str | None = None
    stages: list[Stage] = field(default_factory=lambda: [Stage.IDLE])

    @property
    def stage(self) -> Stage:
        return self.stages[-1]

    def advance(self, stage: Stage) -> None:
        if _STAGE_ORDER.index(stage) <= _STAGE_ORDER.index(self.stage):
            raise RuntimeError(f"illegal transition {self.stage.value} -> {stage.value}")
        self.stages.append(stage)


@dataclass
class ExecutionResult:
    status: ExecutionStatus
    payload: bytes = b""
    content_type: str = "text/plain; charset=utf-8"
    exit_code: int | None = None
    detail: str | None = None
    request_id: str = ""
    tag: str = ""
    duration_ms: int = 0

    @property
    def completed(self) -> bool:
        return self.status is ExecutionStatus.COMPLETED


def _tag_part(value: str) -> str:
    part = _TAG_PART_RE.sub("-", value.lower()).strip("-")
    return part[:TAG_PART_MAX].strip("-") or "x"


def make_tag(prefix: str, user_id: str, task_id: str, token: str) -> str:
    """Image tag readable by user and task; token keeps it unique per execution."""
    return "-".join(_tag_part(p) for p in (prefix, user_id, task_id, token))


class SandboxOrchestrator:
    def __init__(
        self,
        catalog: TaskCatalog,
        engine: Engine,
        extractor: Extractor,
        settings: SandboxSettings,
    ) -> None:
        self.catalog = catalog
        self.engine = engine
        self.extractor = extractor
        self.settings = settings

    def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """Run one submission to completion. Blocks for the unit's lifetime.

        Raises:
            TaskNotFoundError: the catalog has no harness for the task.
            BuildFailedError: the environment could not be built.
        """
        started = time.monotonic()
        fs = assemble(self.catalog, request.task_id, request.code)
        archive = pack(fs)

        # client-supplied request ids can repeat
        token = uuid.uuid4().hex
        unit = ExecutionUnit(tag=make_tag(self.settings.tag_prefix, request.user_id, request.task_id, token))
        result = ExecutionResult(
            status=ExecutionStatus.COMPLETED,
            content_type=self.extractor.content_type,
            request_id=request.request_id,
            tag=unit.tag,
        )

        logger.info("Building %s for user=%s task=%s", unit.tag, request.user_id, request.task_id)
        unit.advance(Stage.BUILDING)
        try:
            build = self.engine.build(archive, unit.tag, self.settings.recipe_path)
        except EngineError as e:
            logger.error("Build of %s failed: %s", unit.tag, e.detail)
            raise
        unit.image_ref = build.image_ref

        try:
            self._run(unit, result)
        finally:
            self._cleanup(unit)
            result.duration_ms = int((time.monotonic() - started) * 1000)
            logger.info(
                "Sandbox execution: request=%s user=%s task=%s tag=%s status=%s exit_code=%s duration=%dms bytes=%d",
                request.request_id, request.user_id, request.task_id, unit.tag, result.status.value,
                result.exit_code, result.duration_ms, len(result.payload),
            )
        return result

    def _fail(self, result: ExecutionResult, detail: str) -> None:
        if result.status is ExecutionStatus.COMPLETED:
            result.status = ExecutionStatus.INFRASTRUCTURE_ERROR
        result.detail = result.detail or detail

    def _run(self, unit: ExecutionUnit, result: ExecutionResult) -> None:
        try:
            unit.handle = self.engine.create(unit.image_ref)
        except EngineError as e:
            logger.warning("Creating unit from %s failed: %s", unit.tag, e.detail)
            self._fail(result, e.detail)
            return
        unit.advance(Stage.CREATED)

        try:
            self.engine.start(unit.handle)
        except EngineError as e:
            logger.warning("Starting unit %s failed: %s", unit.handle, e.detail)
            self._fail(result, e.detail)
        else:
            unit.advance(Stage.RUNNING)
            self._wait(unit, result)
            unit.advance(Stage.EXITED)

        self._collect(unit, result)

    def _wait(self, unit: ExecutionUnit, result: ExecutionResult) -> None:
        timeout = self.settings.timeout_sec or None
        outcome = self.engine.wait(unit.handle, timeout)
        result.exit_code = outcome.status_code

        if outcome.timed_out:
            logger.warning("Unit %s exceeded %ss deadline, killing", unit.handle, timeout)
            result.status = ExecutionStatus.TIMEOUT
            result.detail = f"execution exceeded {timeout}s"
            try:
                self.engine.kill(unit.handle)
            except EngineError as e:
                logger.warning("Killing unit %s failed: %s", unit.handle, e.detail)
            return

        if outcome.error:
            logger.warning("Waiting on unit %s reported: %s", unit.handle, outcome.error)
            if outcome.status_code is None:
                self._fail(result, outcome.error)

    def _collect(self, unit: ExecutionUnit, result: ExecutionResult) -> None:
        try:
            result.payload = self.extractor.extract(self.engine, unit.handle)
        except ArtifactNotFoundError as e:
            logger.warning("No result artifact in unit %s: %s", unit.handle, e)
            self._fail(result, str(e))
        except EngineError as e:
            logger.warning("Collecting from unit %s failed: %s", unit.handle, e.detail)
            self._fail(result, e.detail)
        unit.advance(Stage.COLLECTED)

    def _cleanup(self, unit: ExecutionUnit) -> None:
        if unit.handle is not None:
            try:
                self.engine.remove(unit.handle)
            except Exception as e:
                logger.warning("Removing unit %s failed: %r", unit.handle, e)
            unit.advance(Stage.REMOVED)

        if self.settings.remove_image and unit.image_ref:
            try:
                self.engine.remove_image(unit.image_ref)
            except Exception as e:
                logger.warning("Removing image %s failed: %r", unit.image_ref, e)
