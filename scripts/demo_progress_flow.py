"""Demo: seed a course and walk the lesson progress flow with TestClient.

Run with:
    python scripts/demo_progress_flow.py

Seeds whichever document store the environment selects (in-memory unless
DATABASE_URL is set), so it doubles as a dev seed for a real database.
"""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from app.main import app
from app.models.lesson import Lesson
from app.repos.lesson_repo import LessonRepo
from app.services import token_service
from app.services.activity import ActivityRecorder
from app.services.task_queue import task_queue
from app.store.backend import document_store

COURSE_ID = "intro-to-python"
USER_ID = "demo-learner"

LESSONS = [
    Lesson(
        lesson_id="variables",
        module_id="basics",
        title="Variables and names",
        order=1,
        duration_minutes=12,
        content_md="# Variables\n\nNames point at objects.",
        summary="Assignment binds a name to an object.",
        tips=("Names are case-sensitive.", "Prefer snake_case."),
    ),
    Lesson(
        lesson_id="loops",
        module_id="basics",
        title="for and while",
        order=2,
        duration_minutes=15,
        content_md="# Loops",
        summary="Iterate over any iterable.",
        tips=("Use enumerate() for an index.",),
        mini_challenge={"prompt": "Sum the numbers 1..10", "answer": "55"},
    ),
    Lesson(lesson_id="functions", module_id="functions", title="def", order=3),
    Lesson(lesson_id="modules", module_id="functions", title="import", order=4),
]


async def seed() -> None:
    repo = LessonRepo(document_store, ActivityRecorder(task_queue))
    for lesson in LESSONS:
        await repo.put_lesson(COURSE_ID, lesson)
    await repo.put_course_meta(USER_ID, COURSE_ID, total_lessons=len(LESSONS))


def main() -> None:
    asyncio.run(seed())

    client = TestClient(app)
    headers = {"Authorization": f"Bearer {token_service.create_access_token(sub=USER_ID)}"}
    base = f"/v1/courses/{COURSE_ID}"

    r = client.get(f"{base}/lessons/variables", headers=headers)
    print(f"1. GET  lesson            → {r.status_code}  progress={r.json()['progress']}")

    r = client.put(
        f"{base}/lessons/variables/progress",
        json={"status": "in_progress", "progress_percent": 40},
        headers=headers,
    )
    print(f"2. PUT  in_progress       → {r.status_code}  {r.json()}")

    r = client.put(
        f"{base}/lessons/variables/progress",
        json={"status": "completed", "score": 9.5},
        headers=headers,
    )
    print(f"3. PUT  completed         → {r.status_code}  {r.json()}")

    r = client.put(
        f"{base}/lessons/variables/notes",
        json={"content": "  remember: names are labels  "},
        headers=headers,
    )
    print(f"4. PUT  notes             → {r.status_code}  {r.json()}")

    r = client.post(
        f"{base}/lessons/loops/chat",
        json={"message": "Why does range() stop early?"},
        headers=headers,
    )
    print(f"5. POST chat              → {r.status_code}  {r.json()}")

    r = client.get(f"{base}/progress", headers=headers)
    print(f"6. GET  course progress   → {r.status_code}  {r.json()}")

    r = client.put(
        f"{base}/lessons/loops/progress", json={"status": "finished"}, headers=headers
    )
    print(f"7. PUT  bad status        → {r.status_code}  {r.json()}")

    r = client.get("/v1/me/courses", headers=headers)
    print(f"8. GET  my courses        → {r.status_code}  {r.json()}")


if __name__ == "__main__":
    main()
