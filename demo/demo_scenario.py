#!/usr/bin/env python3
"""
Walk through the enrollment and grading workflow against a running backend.

Start the reference backend first:
    gradedesk serve --seed

Then run:
    python demo/demo_scenario.py [--base-url http://127.0.0.1:8080]
"""

import argparse
import asyncio
import sys
from dataclasses import replace

from gradedesk.api import GradeApiClient
from gradedesk.config import load_config
from gradedesk.services import GradeSession
from gradedesk.view import render_session


SEMESTER = "2024-2025-1"


def step(title: str, result) -> None:
    marker = "OK" if result.success else "FAIL"
    print(f"\n--- {title}: [{marker}] {result.message}")


async def run_demo(session: GradeSession) -> None:
    step("Set semester", session.set_semester(SEMESTER))
    step("Look up student S001", await session.resolve_student("S001"))
    step("Look up course C001", await session.resolve_course("C001"))

    step("Enroll", await session.enroll())
    print(render_session(session.state))

    step("Record regular score 85", await session.record_regular_score(85))
    step("Record exam score 90", await session.record_exam_score(90))
    step("Calculate final score", await session.finalize_grade())
    print(render_session(session.state))

    print("\n--- Course view with statistics")
    session.state.student = None
    await session.refresh_grades()
    print(render_session(session.state))


def main() -> int:
    parser = argparse.ArgumentParser(description="gradedesk workflow demo")
    parser.add_argument("--base-url", type=str, help="Backend base URL")
    args = parser.parse_args()

    config = load_config()
    if args.base_url:
        config = replace(config, base_url=args.base_url)
    client = GradeApiClient(config)

    print("=" * 60)
    print("GRADEDESK ENROLLMENT AND GRADING - DEMO")
    print("=" * 60)

    if not client.check_health():
        print(f"Backend at {client.base_url} is not running!")
        print("\nPlease start it first:")
        print("  gradedesk serve --seed")
        return 1

    async def run():
        async with GradeSession(client) as session:
            await run_demo(session)

    try:
        asyncio.run(run())
    finally:
        client.close()

    print("\n" + "=" * 60)
    print("DEMO COMPLETED")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
