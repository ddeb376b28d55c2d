import asyncio
import uuid

from fastapi import APIRouter, Request, Response

from grader.dependencies import Orchestrator
from grader.models.run import RunRequest
from grader.sandbox.orchestrator import ExecutionRequest, ExecutionStatus

router = APIRouter()

STATUS_CODES = {
    ExecutionStatus.COMPLETED: 200,
    ExecutionStatus.TIMEOUT: 504,
    ExecutionStatus.INFRASTRUCTURE_ERROR: 502,
}


@router.post("/run")
async def run(body: RunRequest, request: Request, orchestrator: Orchestrator) -> Response:
    request_id = getattr(request.state, "request_id", None) or uuid.uuid4().hex
    result = await asyncio.to_thread(
        orchestrator.execute,
        ExecutionRequest(
            user_id=body.user,
            task_id=body.task,
            code=body.code,
            request_id=request_id,
        ),
    )

    headers = {"X-Execution-Status": result.status.value}
    if result.exit_code is not None:
        headers["X-Exit-Code"] = str(result.exit_code)
    return Response(
        content=result.payload,
        status_code=STATUS_CODES[result.status],
        media_type=result.content_type,
        headers=headers,
    )
