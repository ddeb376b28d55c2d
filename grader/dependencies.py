"""Dependency injection for FastAPI endpoints.

This module provides FastAPI dependencies for the catalog, the engine and
the orchestrator initialised during lifespan.

Usage in controllers:
    from grader.dependencies import Orchestrator

    @router.post("/run")
    async def run(orchestrator: Orchestrator):
        ...
"""

from typing import Annotated

from fastapi import Depends

from grader import state
from grader.catalog import TaskCatalog
from grader.errors import ServiceUnavailableError
from grader.sandbox.engine import Engine
from grader.sandbox.orchestrator import SandboxOrchestrator


def get_catalog() -> TaskCatalog:
    """Get the task catalog.

    Raises:
        ServiceUnavailableError: If the catalog was not loaded.
    """
    if state.catalog is None:
        raise ServiceUnavailableError(detail="Task catalog not loaded")
    return state.catalog


def get_orchestrator() -> SandboxOrchestrator:
    """Get the sandbox orchestrator.

    Raises:
        ServiceUnavailableError: If the container engine is not connected.
    """
    if state.orchestrator is None:
        raise ServiceUnavailableError(detail="Container engine not connected")
    return state.orchestrator


def get_optional_engine() -> Engine | None:
    """Get the engine if connected, or None."""
    return state.engine


Catalog = Annotated[TaskCatalog, Depends(get_catalog)]
Orchestrator = Annotated[SandboxOrchestrator, Depends(get_orchestrator)]
OptionalEngine = Annotated[Engine | None, Depends(get_optional_engine)]
