"""In-memory stand-ins for the container engine."""

import io
import tarfile
from collections.abc import Callable

from grader.errors import BuildFailedError, EngineError
from grader.sandbox.archive import unpack
from grader.sandbox.engine import BuildOutcome, Engine, WaitOutcome
from grader.sandbox.vfs import VirtualFilesystem

DOCKERFILE = b"FROM oven/bun:1-alpine\nWORKDIR /app\nCOPY code.ts test.ts ./\nCMD [\"bun\", \"test\", \"./test.ts\"]\n"
SUM_HARNESS = b'import { expect, test } from "bun:test";\nimport { add } from "./code";\ntest("add", () => expect(add(2, 3)).toBe(5));\n'


def default_runner(fs: VirtualFilesystem) -> tuple[int, bytes]:
    """Stand-in for running the harness: echo the submission."""
    return 0, b"ran: " + fs["code.ts"].content


class FakeEngine(Engine):
    """In-memory engine recording every call."""

    def __init__(self, runner: Callable[[VirtualFilesystem], tuple[int, bytes]] = default_runner) -> None:
        self.runner = runner
        self.calls: list[tuple[str, str]] = []
        self.images: dict[str, VirtualFilesystem] = {}
        self.containers: dict[str, str] = {}
        self.outputs: dict[str, tuple[int, bytes]] = {}
        self.fail: dict[str, Exception] = {}
        self.wait_outcome: WaitOutcome | None = None
        self.files: dict[str, bytes] = {}
        self._next = 0

    def _maybe_fail(self, step: str) -> None:
        if step in self.fail:
            raise self.fail[step]

    def build(self, archive, tag, recipe_path):
        self.calls.append(("build", tag))
        self._maybe_fail("build")
        fs = unpack(archive)
        if recipe_path not in fs:
            raise BuildFailedError(detail=f"no recipe {recipe_path}", tag=tag)
        self.images[tag] = fs
        return BuildOutcome(image_ref=tag, log=["Step 1/4 : FROM oven/bun:1-alpine"])

    def create(self, image_ref):
        self.calls.append(("create", image_ref))
        self._maybe_fail("create")
        self._next += 1
        handle = f"c{self._next}"
        self.containers[handle] = image_ref
        return handle

    def start(self, handle):
        self.calls.append(("start", handle))
        self._maybe_fail("start")
        self.outputs[handle] = self.runner(self.images[self.containers[handle]])

    def wait(self, handle, timeout):
        self.calls.append(("wait", handle))
        if self.wait_outcome is not None:
            return self.wait_outcome
        return WaitOutcome(status_code=self.outputs[handle][0])

    def logs(self, handle):
        self.calls.append(("logs", handle))
        self._maybe_fail("logs")
        return self.outputs.get(handle, (None, b""))[1]

    def copy_out(self, handle, path):
        self.calls.append(("copy_out", handle))
        self._maybe_fail("copy_out")
        if path not in self.files:
            raise EngineError(detail=f"{path} not found", error_code="ARTIFACT_MISSING")
        return envelope(path.rsplit("/", 1)[-1], self.files[path])

    def kill(self, handle):
        self.calls.append(("kill", handle))
        self._maybe_fail("kill")

    def remove(self, handle):
        self.calls.append(("remove", handle))
        self._maybe_fail("remove")
        self.containers.pop(handle, None)

    def remove_image(self, image_ref):
        self.calls.append(("remove_image", image_ref))
        self._maybe_fail("remove_image")
        self.images.pop(image_ref, None)

    def steps(self) -> list[str]:
        return [step for step, _ in self.calls]


def envelope(name: str, content: bytes, extra: dict[str, bytes] | None = None) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        for entry_name, data in [(name, content), *(extra or {}).items()]:
            info = tarfile.TarInfo(entry_name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()
