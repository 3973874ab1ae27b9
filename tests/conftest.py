"""Shared fixtures: an in-memory delivery collaborator and a temporary database."""

import pytest
import pytest_asyncio

from homeworkbugger.db.migrations import run_migrations
from homeworkbugger.db.models import ScheduledNotification, ScheduleRequest
from homeworkbugger.db.repository import Repository
from homeworkbugger.engine.delivery import describe_trigger


class FakeDelivery:
    """Delivery collaborator that keeps scheduled requests in a dict."""

    def __init__(self, granted: bool = True):
        self.granted = granted
        self.cancel_fails = False
        self.scheduled: dict[str, ScheduleRequest] = {}
        self._counter = 0

    def _store(self, request: ScheduleRequest) -> str:
        self._counter += 1
        handle = f"handle-{self._counter}"
        self.scheduled[handle] = request
        return handle

    async def request_permission(self) -> bool:
        return self.granted

    async def ensure_channel(self) -> None:
        pass

    async def schedule_recurring(self, request: ScheduleRequest) -> str:
        return self._store(request)

    async def schedule_one_shot(self, request: ScheduleRequest) -> str:
        return self._store(request)

    async def cancel(self, handle: str) -> None:
        if self.cancel_fails:
            raise RuntimeError("delivery unavailable")
        del self.scheduled[handle]

    async def list_scheduled(self) -> list[ScheduledNotification]:
        return [
            ScheduledNotification(
                handle=handle,
                title=request.title,
                body=request.body,
                trigger=describe_trigger(request),
            )
            for handle, request in self.scheduled.items()
        ]


@pytest.fixture
def delivery() -> FakeDelivery:
    return FakeDelivery()


@pytest_asyncio.fixture
async def repo(tmp_path):
    db_path = tmp_path / "test.db"
    await run_migrations(db_path)

    repository = Repository(db_path)
    await repository.connect()
    yield repository
    await repository.close()
