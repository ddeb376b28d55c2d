"""Startup and shutdown of the catalog, engine and orchestrator."""

import logging
from dataclasses import dataclass

from grader import state
from grader.catalog import TaskCatalog
from grader.config import get_settings
from grader.errors import EngineError
from grader.sandbox.engine import DockerEngine, Engine
from grader.sandbox.extractor import make_extractor
from grader.sandbox.orchestrator import SandboxOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class LifespanResources:
    """Container for resources initialized during lifespan."""

    catalog: TaskCatalog | None = None
    engine: Engine | None = None
    orchestrator: SandboxOrchestrator | None = None


def init_catalog() -> TaskCatalog:
    """Load the task catalog from the configured root."""
    settings = get_settings()
    return TaskCatalog.load(settings.sandbox.catalog_root)


def init_engine() -> Engine | None:
    """Connect to the container engine.

    Returns:
        The engine, or None if the daemon is unreachable.
    """
    settings = get_settings()
    try:
        return DockerEngine(
            base_url=settings.sandbox.docker_host,
            build_log_tail=settings.sandbox.build_log_tail,
        )
    except EngineError as e:
        logger.warning("Container engine unavailable: %s", e.detail)
        return None


async def setup_resources(engine: Engine | None = None) -> LifespanResources:
    """Set up all shared resources.

    Args:
        engine: Engine to use instead of connecting to Docker.
    """
    settings = get_settings()
    resources = LifespanResources()

    resources.catalog = init_catalog()
    resources.engine = engine if engine is not None else init_engine()
    if resources.engine is not None:
        resources.orchestrator = SandboxOrchestrator(
            catalog=resources.catalog,
            engine=resources.engine,
            extractor=make_extractor(settings.sandbox),
            settings=settings.sandbox,
        )

    state.catalog = resources.catalog
    state.engine = resources.engine
    state.orchestrator = resources.orchestrator

    return resources


async def cleanup_resources(resources: LifespanResources) -> None:
    """Clean up all resources on shutdown."""
    if resources.engine is not None:
        try:
            resources.engine.close()
        except Exception as e:
            logger.warning("Closing engine failed: %s", e)

    state.catalog = None
    state.engine = None
    state.orchestrator = None
