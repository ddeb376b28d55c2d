"""Container engine capability used by the orchestrator.

Engine is the boundary the pipeline depends on; DockerEngine implements it
on the Docker SDK. Tests substitute an in-memory engine.
"""

import abc
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import IO, Any

import docker
import requests
from docker.errors import APIError, BuildError, DockerException, ImageNotFound, NotFound

from grader.errors import BuildFailedError, EngineError

logger = logging.getLogger("grader.engine")

# docker-py lets transport failures through as requests exceptions
ENGINE_ERRORS = (DockerException, requests.exceptions.RequestException)


@dataclass
class BuildOutcome:
    image_ref: str
    log: list[str] = field(default_factory=list)


@dataclass
class WaitOutcome:
    """First of: exit status, engine error signal, deadline."""

    status_code: int | None = None
    error: str | None = None
    timed_out: bool = False

    @property
    def exited(self) -> bool:
        return self.status_code is not None and not self.timed_out


class Engine(abc.ABC):
    @abc.abstractmethod
    def build(self, archive: IO[bytes], tag: str, recipe_path: str) -> BuildOutcome: ...

    @abc.abstractmethod
    def create(self, image_ref: str) -> str: ...

    @abc.abstractmethod
    def start(self, handle: str) -> None: ...

    @abc.abstractmethod
    def wait(self, handle: str, timeout: float | None) -> WaitOutcome: ...

    @abc.abstractmethod
    def logs(self, handle: str) -> bytes: ...

    @abc.abstractmethod
    def copy_out(self, handle: str, path: str) -> bytes:
        """Return the raw tar envelope wrapping path."""

    @abc.abstractmethod
    def kill(self, handle: str) -> None: ...

    @abc.abstractmethod
    def remove(self, handle: str) -> None: ...

    @abc.abstractmethod
    def remove_image(self, image_ref: str) -> None: ...

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        pass


def _build_log_lines(chunks: Any) -> list[str]:
    lines = []
    for chunk in chunks or ():
        if not isinstance(chunk, dict):
            continue
        text = chunk.get("stream") or chunk.get("error") or chunk.get("status")
        if text:
            lines.extend(line for line in str(text).splitlines() if line.strip())
    return lines


class DockerEngine(Engine):
    """Engine backed by a Docker daemon."""

    def __init__(self, base_url: str = "", build_log_tail: int = 20, client: Any = None) -> None:
        if client is not None:
            self.client = client
        else:
            try:
                self.client = docker.DockerClient(base_url=base_url) if base_url else docker.from_env()
            except DockerException as e:
                raise EngineError(detail=f"Failed to connect to Docker daemon: {e}") from e
        self.build_log_tail = build_log_tail

    def _tail(self, lines: list[str]) -> list[str]:
        if not self.build_log_tail:
            return []
        return list(deque(lines, maxlen=self.build_log_tail))

    def _container(self, handle: str):
        try:
            return self.client.containers.get(handle)
        except ENGINE_ERRORS as e:
            raise EngineError(detail=f"Container {handle} unavailable: {e}") from e

    def build(self, archive: IO[bytes], tag: str, recipe_path: str) -> BuildOutcome:
        try:
            image, chunks = self.client.images.build(
                fileobj=archive,
                custom_context=True,
                dockerfile=recipe_path,
                tag=tag,
                rm=True,
            )
        except BuildError as e:
            log = _build_log_lines(e.build_log)
            raise BuildFailedError(
                detail=f"Build of {tag} failed: {e.msg}",
                tag=tag,
                build_log=self._tail(log),
            ) from e
        except (APIError, requests.exceptions.RequestException) as e:
            raise BuildFailedError(detail=f"Build of {tag} failed: {e}", tag=tag) from e
        log = _build_log_lines(chunks)
        logger.debug("Built %s (%s), %d log lines", tag, image.id, len(log))
        return BuildOutcome(image_ref=tag, log=log)

    def create(self, image_ref: str) -> str:
        try:
            container = self.client.containers.create(image_ref)
        except ENGINE_ERRORS as e:
            raise EngineError(detail=f"Failed to create container from {image_ref}: {e}") from e
        return container.id

    def start(self, handle: str) -> None:
        container = self._container(handle)
        try:
            container.start()
        except ENGINE_ERRORS as e:
            raise EngineError(detail=f"Failed to start container {handle}: {e}") from e

    def wait(self, handle: str, timeout: float | None) -> WaitOutcome:
        try:
            container = self._container(handle)
            response = container.wait(timeout=timeout, condition="not-running")
        except (requests.exceptions.ReadTimeout, requests.exceptions.ConnectionError) as e:
            # docker-py surfaces an expired wait deadline as a transport timeout
            if timeout is not None and "timed out" in str(e).lower():
                return WaitOutcome(timed_out=True)
            return WaitOutcome(error=str(e))
        except (DockerException, EngineError) as e:
            return WaitOutcome(error=str(e))

        error = response.get("Error") or None
        if isinstance(error, dict):
            error = error.get("Message") or None
        return WaitOutcome(status_code=response.get("StatusCode"), error=error)

    def logs(self, handle: str) -> bytes:
        container = self._container(handle)
        try:
            return container.logs(stdout=True, stderr=True)
        except ENGINE_ERRORS as e:
            raise EngineError(detail=f"Failed to read logs of {handle}: {e}") from e

    def copy_out(self, handle: str, path: str) -> bytes:
        container = self._container(handle)
        try:
            chunks, _stat = container.get_archive(path)
            return b"".join(chunks)
        except NotFound as e:
            raise EngineError(detail=f"{path} not found in {handle}", error_code="ARTIFACT_MISSING") from e
        except ENGINE_ERRORS as e:
            raise EngineError(detail=f"Failed to copy {path} from {handle}: {e}") from e

    def kill(self, handle: str) -> None:
        container = self._container(handle)
        try:
            container.kill()
        except ENGINE_ERRORS as e:
            raise EngineError(detail=f"Failed to kill container {handle}: {e}") from e

    def remove(self, handle: str) -> None:
        try:
            self.client.api.remove_container(handle, force=True)
        except NotFound:
            logger.debug("Container %s already gone", handle)
        except ENGINE_ERRORS as e:
            raise EngineError(detail=f"Failed to remove container {handle}: {e}") from e

    def remove_image(self, image_ref: str) -> None:
        try:
            self.client.images.remove(image=image_ref, force=True)
        except ImageNotFound:
            logger.debug("Image %s already gone", image_ref)
        except ENGINE_ERRORS as e:
            raise EngineError(detail=f"Failed to remove image {image_ref}: {e}") from e

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except ENGINE_ERRORS:
            return False

    def close(self) -> None:
        self.client.close()
