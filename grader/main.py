import logging

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
)
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from grader.config import get_settings
from grader.controllers.health import router as health_router
from grader.controllers.run import router as run_router
from grader.controllers.tasks import router as tasks_router
from grader.errors import register_exception_handlers
from grader.lifespan import cleanup_resources, setup_resources
from grader.middleware import RequestContextMiddleware

settings = get_settings()

app = FastAPI(title="Grader Sandbox API", version="1.0.0")
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["POST", "GET", "OPTIONS", "PUT", "DELETE"],
    allow_headers=[
        "Accept",
        "Content-Type",
        "Content-Length",
        "Accept-Encoding",
        "Authorization",
        "X-Request-ID",
    ],
    expose_headers=["X-Request-ID", "X-Execution-Status", "X-Exit-Code"],
)

if settings.debug.request:
    logging.getLogger("grader.http").setLevel(logging.DEBUG)
app.add_middleware(RequestContextMiddleware)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    resources = await setup_resources()
    try:
        yield
    finally:
        await cleanup_resources(resources)


app.router.lifespan_context = lifespan

app.include_router(health_router)
app.include_router(tasks_router)
app.include_router(run_router)

Instrumentator().instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
