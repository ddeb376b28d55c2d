"""In-memory filesystem for one submission.

assemble() merges the environment template, the task harness and the
submitted code into a VirtualFilesystem keyed by relative posix path.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from grader.catalog import TaskCatalog

SUBMISSION_PATH = "code.ts"
HARNESS_PATH = "test.ts"
FILE_MODE = 0o644


class PathCollisionError(ValueError):
    """Two sources tried to place a file at the same path."""


@dataclass(frozen=True)
class VirtualFile:
    content: bytes
    mode: int = FILE_MODE


def normalize_path(path: str) -> str:
    """Return a clean relative posix path, rejecting absolute or escaping paths."""
    pure = PurePosixPath(path)
    if pure.is_absolute() or ".." in pure.parts:
        raise ValueError(f"path must be relative and stay inside the root: {path!r}")
    normalized = pure.as_posix()
    if normalized in ("", "."):
        raise ValueError("empty path")
    return normalized


class VirtualFilesystem(Mapping[str, VirtualFile]):
    """Ordered path -> VirtualFile mapping; a path can be added only once."""

    def __init__(self) -> None:
        self._files: dict[str, VirtualFile] = {}

    def add(self, path: str, content: bytes, mode: int = FILE_MODE) -> None:
        path = normalize_path(path)
        if path in self._files:
            raise PathCollisionError(f"path already present: {path}")
        # a file cannot also be a directory of another entry
        for existing in self._files:
            if existing.startswith(path + "/") or path.startswith(existing + "/"):
                raise PathCollisionError(f"{path} conflicts with {existing}")
        self._files[path] = VirtualFile(content=bytes(content), mode=mode)

    @classmethod
    def from_directory(cls, root: Path | str) -> "VirtualFilesystem":
        """Snapshot a real directory tree, keeping permission bits."""
        root = Path(root)
        fs = cls()
        for path in sorted(root.rglob("*")):
            if path.is_file():
                fs.add(path.relative_to(root).as_posix(), path.read_bytes(), path.stat().st_mode & 0o7777)
        return fs

    def directories(self) -> set[str]:
        """Every directory implied by a file path, excluding the root."""
        dirs: set[str] = set()
        for path in self._files:
            for parent in PurePosixPath(path).parents:
                if parent.as_posix() != ".":
                    dirs.add(parent.as_posix())
        return dirs

    def __getitem__(self, path: str) -> VirtualFile:
        return self._files[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __repr__(self) -> str:
        return f"VirtualFilesystem({list(self._files)})"


def assemble(catalog: TaskCatalog, task_id: str, submitted_code: bytes | str) -> VirtualFilesystem:
    """Build the build context for one submission.

    Raises TaskNotFoundError when the catalog has no harness for task_id.
    The submitted code is copied as opaque bytes.
    """
    task = catalog.get(task_id)
    if isinstance(submitted_code, str):
        submitted_code = submitted_code.encode("utf-8")

    fs = VirtualFilesystem()
    for path, content in catalog.environment_files().items():
        fs.add(path, content, FILE_MODE)
    fs.add(HARNESS_PATH, task.harness_source, FILE_MODE)
    fs.add(SUBMISSION_PATH, submitted_code, FILE_MODE)
    return fs
