"""Command line entry points.

    python -m grader serve
    python -m grader run --task sum --user alice solution.ts
"""

import argparse
import logging
import sys
from pathlib import Path

from grader.config import get_settings


def serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "grader.main:app",
        host=args.host or settings.server.host,
        port=args.port or settings.server.port,
    )
    return 0


def run_once(args: argparse.Namespace) -> int:
    from grader.catalog import TaskCatalog
    from grader.errors import APIError
    from grader.sandbox.engine import DockerEngine
    from grader.sandbox.extractor import make_extractor
    from grader.sandbox.orchestrator import ExecutionRequest, SandboxOrchestrator

    logging.basicConfig(level=logging.INFO, format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s")
    settings = get_settings().sandbox
    code = sys.stdin.buffer.read() if args.file == "-" else Path(args.file).read_bytes()

    try:
        engine = DockerEngine(base_url=settings.docker_host, build_log_tail=settings.build_log_tail)
        try:
            orchestrator = SandboxOrchestrator(
                catalog=TaskCatalog.load(settings.catalog_root),
                engine=engine,
                extractor=make_extractor(settings),
                settings=settings,
            )
            result = orchestrator.execute(ExecutionRequest(user_id=args.user, task_id=args.task, code=code))
        finally:
            engine.close()
    except APIError as e:
        print(f"error: {e.detail}", file=sys.stderr)
        for line in (e.context or {}).get("build_log", []):
            print(f"  {line}", file=sys.stderr)
        return 2

    sys.stdout.buffer.write(result.payload)
    sys.stdout.flush()
    print(f"status={result.status.value} exit_code={result.exit_code}", file=sys.stderr)
    return 0 if result.completed else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="grader", description="Sandboxed code-grading service.")
    sub = parser.add_subparsers(dest="command", required=True)

    serve_parser = sub.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.set_defaults(func=serve)

    run_parser = sub.add_parser("run", help="Grade one submission and print the result")
    run_parser.add_argument("--task", required=True)
    run_parser.add_argument("--user", default="local")
    run_parser.add_argument("file", help="Source file, or '-' for stdin")
    run_parser.set_defaults(func=run_once)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
