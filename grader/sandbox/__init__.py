from grader.sandbox.archive import pack, unpack, unwrap_single
from grader.sandbox.engine import BuildOutcome, DockerEngine, Engine, WaitOutcome
from grader.sandbox.extractor import Extractor, LogExtractor, ReportExtractor, make_extractor
from grader.sandbox.orchestrator import (
    ExecutionRequest,
    ExecutionResult,
    ExecutionStatus,
    ExecutionUnit,
    SandboxOrchestrator,
    Stage,
    make_tag,
)
from grader.sandbox.vfs import (
    HARNESS_PATH,
    SUBMISSION_PATH,
    PathCollisionError,
    VirtualFile,
    VirtualFilesystem,
    assemble,
)
