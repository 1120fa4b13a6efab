"""
Main entry point for gradedesk.

Usage:
    gradedesk serve --seed
    gradedesk grades --student S001
    gradedesk enroll --student S001 --course C001 --semester 2024-2025-1
    gradedesk score regular 85 --student S001 --course C001
    gradedesk drop --student S001 --course C001 --yes
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from .api import GradeApiClient, GradedeskRestAPI
from .config import load_config
from .core.exceptions import ConfigurationError
from .persistence import Registry, create_sample_registry
from .services import ActionResult, GradeSession
from .view import render_enrollments, render_session

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _console_supports_utf8() -> bool:
    enc = getattr(sys.stdout, "encoding", None)
    return enc is not None and "utf" in enc.lower()


_OK_CHAR = "✓" if _console_supports_utf8() else "[OK]"
_FAIL_CHAR = "✗" if _console_supports_utf8() else "[FAIL]"


def _report(result: ActionResult) -> bool:
    marker = _OK_CHAR if result.success else _FAIL_CHAR
    print(f"{marker} {result.message}")
    return result.success


def _confirm(prompt: str) -> bool:
    answer = input(f"{prompt} [y/N] ")
    return answer.strip().lower() in ("y", "yes")


async def run_command(args: argparse.Namespace, session: GradeSession) -> int:
    """Apply the selection options, then run the requested action."""
    if args.semester and not _report(session.set_semester(args.semester)):
        return 1
    if args.student and not _report(await session.resolve_student(args.student)):
        return 1
    if args.course and not _report(await session.resolve_course(args.course)):
        return 1

    if args.command == "grades":
        result = await session.refresh_grades()
    elif args.command == "enroll":
        result = await session.enroll()
    elif args.command == "drop":
        student, course = session.state.student, session.state.course
        if student is None or course is None:
            print(f"{_FAIL_CHAR} --student and --course are required to drop a course")
            return 1
        confirm = (lambda prompt: True) if args.yes else _confirm
        result = await session.drop(student.sid, course.cid, session.state.semester, confirm)
    elif args.command == "score":
        if args.kind == "regular":
            result = await session.record_regular_score(args.value)
        else:
            result = await session.record_exam_score(args.value)
    elif args.command == "finalize":
        result = await session.finalize_grade()
    elif args.command == "courses":
        result = await session.list_enrollments()
        ok = _report(result)
        if ok:
            print(render_enrollments(result.data))
        return 0 if ok else 1
    else:
        raise ValueError(f"Unknown command {args.command}")

    ok = _report(result)
    print()
    print(render_session(session.state))
    return 0 if ok else 1


async def _run_client(args: argparse.Namespace) -> int:
    try:
        config = load_config(args.config)
        if args.base_url:
            config = replace(config, base_url=args.base_url)
    except ConfigurationError as e:
        print(f"{_FAIL_CHAR} {e.message}")
        return 2

    client = GradeApiClient(config)
    try:
        async with GradeSession(client, max_workers=config.max_workers) as session:
            return await run_command(args, session)
    finally:
        client.close()


def serve(host: str, port: int, seed: bool, log_level: str) -> None:
    """Run the reference backend until interrupted."""
    import uvicorn

    registry = create_sample_registry() if seed else Registry()
    api = GradedeskRestAPI(registry)
    print(f"{_OK_CHAR} Reference backend on http://{host}:{port} (docs at /docs)")
    uvicorn.run(api.app, host=host, port=port, log_level=log_level.lower())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Enrollment and grade-entry coordinator")
    parser.add_argument("--config", type=str, help="Configuration file path (JSON)")
    parser.add_argument("--base-url", type=str, help="Backend base URL")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")

    selection = argparse.ArgumentParser(add_help=False)
    selection.add_argument("--student", type=str, help="Student number")
    selection.add_argument("--course", type=str, help="Course number")
    selection.add_argument("--semester", type=str, help="Semester token, e.g. 2024-2025-1")

    sub = parser.add_subparsers(dest="command", required=True)

    serve_parser = sub.add_parser("serve", help="Run the reference backend")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8080)
    serve_parser.add_argument("--seed", action="store_true", help="Load sample students and courses")

    sub.add_parser("grades", parents=[selection], help="Show grades for a student or course")
    sub.add_parser("enroll", parents=[selection], help="Enroll a student in a course")
    sub.add_parser("courses", parents=[selection], help="List a student's enrollments")
    sub.add_parser("finalize", parents=[selection], help="Calculate the final score")

    drop_parser = sub.add_parser("drop", parents=[selection], help="Drop an enrollment")
    drop_parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    score_parser = sub.add_parser("score", parents=[selection], help="Record a score")
    score_parser.add_argument("kind", choices=["regular", "exam"])
    score_parser.add_argument("value", help="Score between 0 and 100")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    if args.command == "serve":
        try:
            serve(args.host, args.port, args.seed, args.log_level)
        except KeyboardInterrupt:
            print("\nShutting down...")
        return 0

    try:
        return asyncio.run(_run_client(args))
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
