"""Static catalog of grading tasks.

Layout of a catalog root:

    image/                     environment template, image/Dockerfile is the recipe
    tests/<task>/test.ts       harness (required)
    tests/<task>/base.ts       starter code shown to the user (optional)
    tests/<task>/description.md
    tests/<task>.ts            harness-only task, single-file form

The catalog is read once at startup and never mutated afterwards.
"""

import logging
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from grader.errors import TaskNotFoundError

logger = logging.getLogger("grader.catalog")

TASK_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")
HARNESS_FILE = "test.ts"
BASE_FILE = "base.ts"
DESCRIPTION_FILE = "description.md"


@dataclass(frozen=True)
class TaskDefinition:
    id: str
    harness_source: bytes
    base_source: bytes | None = None
    description: str | None = None


def _read_optional(path: Path) -> bytes | None:
    return path.read_bytes() if path.is_file() else None


class TaskCatalog:
    """Read-only mapping of task id to TaskDefinition plus the environment template."""

    def __init__(
        self,
        tasks: Mapping[str, TaskDefinition],
        environment: Mapping[str, bytes],
    ) -> None:
        self._tasks = MappingProxyType(dict(tasks))
        self._environment = MappingProxyType(dict(environment))

    @classmethod
    def load(cls, root: Path | str) -> "TaskCatalog":
        root = Path(root)
        image_dir = root / "image"
        tests_dir = root / "tests"
        if not image_dir.is_dir():
            raise FileNotFoundError(f"catalog has no image directory: {image_dir}")

        environment: dict[str, bytes] = {}
        for path in sorted(image_dir.rglob("*")):
            if path.is_file():
                environment[path.relative_to(image_dir).as_posix()] = path.read_bytes()

        tasks: dict[str, TaskDefinition] = {}
        if tests_dir.is_dir():
            for entry in sorted(tests_dir.iterdir()):
                if entry.is_dir() and (entry / HARNESS_FILE).is_file():
                    task_id = entry.name
                    description = _read_optional(entry / DESCRIPTION_FILE)
                    definition = TaskDefinition(
                        id=task_id,
                        harness_source=(entry / HARNESS_FILE).read_bytes(),
                        base_source=_read_optional(entry / BASE_FILE),
                        description=description.decode("utf-8") if description is not None else None,
                    )
                elif entry.is_file() and entry.suffix == ".ts":
                    task_id = entry.stem
                    definition = TaskDefinition(id=task_id, harness_source=entry.read_bytes())
                else:
                    continue

                if not TASK_ID_RE.match(task_id):
                    logger.warning("Skipping task with invalid id: %r", task_id)
                    continue
                if task_id in tasks:
                    logger.warning("Duplicate task id %r, ignoring %s", task_id, entry)
                    continue
                tasks[task_id] = definition

        logger.info(
            "Loaded task catalog: root=%s tasks=%d environment_files=%d",
            root, len(tasks), len(environment),
        )
        return cls(tasks, environment)

    def get(self, task_id: str) -> TaskDefinition:
        if not TASK_ID_RE.match(task_id or "") or task_id not in self._tasks:
            raise TaskNotFoundError(task_id)
        return self._tasks[task_id]

    def environment_files(self) -> Mapping[str, bytes]:
        return self._environment

    def ids(self) -> list[str]:
        return sorted(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __iter__(self) -> Iterator[TaskDefinition]:
        return (self._tasks[task_id] for task_id in self.ids())

    def __len__(self) -> int:
        return len(self._tasks)
