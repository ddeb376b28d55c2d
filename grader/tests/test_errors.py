"""Tests for error classes and handlers."""

from fastapi import FastAPI
from fastapi.testclient import TestClient


class TestAPIErrors:
    def test_task_not_found(self):
        from grader.errors import NotFoundError, TaskNotFoundError

        error = TaskNotFoundError("sum")
        assert isinstance(error, NotFoundError)
        assert error.status_code == 404
        assert error.error == "not_found"
        assert error.error_code == "TASK_NOT_FOUND"
        assert error.context == {"task_id": "sum"}
        assert "sum" in error.detail

    def test_build_failed_is_engine_error(self):
        from grader.errors import BuildFailedError, EngineError, ExternalServiceError

        error = BuildFailedError(build_log=["x"])
        assert isinstance(error, EngineError)
        assert isinstance(error, ExternalServiceError)
        assert error.status_code == 502
        assert error.error == "build_failed"
        assert error.detail == "Environment build failed"
        assert error.context == {"build_log": ["x"]}

    def test_archive_packing_error_is_io_error(self):
        from grader.errors import ArchivePackingError

        assert issubclass(ArchivePackingError, OSError)


class TestErrorResponse:
    def test_minimal(self):
        from grader.errors import ErrorResponse

        data = ErrorResponse(error="internal_error").model_dump(exclude_none=True)
        assert data == {"error": "internal_error"}

    def test_to_response(self):
        from grader.errors import EngineError

        response = EngineError(detail="daemon down", error_code="ENGINE_DOWN").to_response()
        assert response.error == "engine_error"
        assert response.detail == "daemon down"
        assert response.error_code == "ENGINE_DOWN"
        assert response.context is None


class TestExceptionHandlers:
    def test_api_error_handler_integration(self):
        from grader.errors import TaskNotFoundError, register_exception_handlers

        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/boom")
        async def boom():
            raise TaskNotFoundError("nope")

        client = TestClient(app, raise_server_exceptions=False)
        response = client.get("/boom")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "not_found"
        assert body["context"] == {"task_id": "nope"}
