from grader.catalog import TaskCatalog
from grader.sandbox.engine import Engine
from grader.sandbox.orchestrator import SandboxOrchestrator

# Global runtime state initialized in lifespan.setup_resources
catalog: TaskCatalog | None = None
engine: Engine | None = None
orchestrator: SandboxOrchestrator | None = None
