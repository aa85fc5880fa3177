from __future__ import annotations

import asyncio
import sys
import time
from pathlib import Path
from typing import List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from auth.store import CredentialStore  # noqa: E402
from config.settings import Settings  # noqa: E402
from messaging import (  # noqa: E402
    AttachmentStore,
    Connected,
    DestinationResolver,
    Group,
    OutboundDispatcher,
    SessionSupervisor,
    TransportSession,
)

TEAM_ALPHA_ID = "120363025246125244@g.us"


class FakeTransport(TransportSession):
    """In-memory transport session driven by the test."""

    def __init__(self, credentials, emit, groups=None, concurrent_sends_safe=True):
        super().__init__(credentials, emit)
        self.groups: List[Group] = list(groups or [])
        self.concurrent_sends_safe = concurrent_sends_safe
        self.started = False
        self.stopped = False
        self.sent = []
        self.list_calls = 0
        self.list_error: Optional[Exception] = None
        self.send_error: Optional[Exception] = None
        self.next_id: Optional[str] = "3EB0C767D26A1D1E"

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def list_groups(self) -> List[Group]:
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        return list(self.groups)

    async def send(self, destination_id, payload):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((destination_id, payload))
        return self.next_id


class FakeTransportFactory:
    """Records every session the supervisor creates."""

    def __init__(self, groups=None):
        self.groups = groups if groups is not None else default_groups()
        self.sessions: List[FakeTransport] = []
        self.credentials_seen = []
        self.error: Optional[Exception] = None

    def __call__(self, credentials, emit) -> FakeTransport:
        self.credentials_seen.append(credentials)
        if self.error is not None:
            raise self.error
        session = FakeTransport(credentials, emit, groups=self.groups)
        self.sessions.append(session)
        return session

    @property
    def current(self) -> FakeTransport:
        return self.sessions[-1]


def default_groups() -> List[Group]:
    return [
        Group(id=TEAM_ALPHA_ID, name="Team Alpha"),
        Group(id="120363041111111111@g.us", name="Family"),
        Group(id="120363042222222222@g.us", name="team alpha"),
    ]


async def drain(supervisor: SessionSupervisor) -> None:
    """Wait until every queued session event has been handled."""
    await asyncio.sleep(0)
    await supervisor._queue.join()


def wait_for(predicate, timeout: float = 2.0) -> None:
    """Poll until predicate() is true; used where events cross threads."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return
        time.sleep(0.01)
    raise AssertionError("condition not met in time")


@pytest.fixture
def factory() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture
def credential_store(tmp_path: Path) -> CredentialStore:
    return CredentialStore(str(tmp_path / "auth"))


@pytest.fixture
def attachments(tmp_path: Path) -> AttachmentStore:
    return AttachmentStore(str(tmp_path / "uploads"))


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        auth_dir=str(tmp_path / "auth"),
        upload_dir=str(tmp_path / "uploads"),
        max_image_bytes=1024,
        enable_ping_command=True,
    )


@pytest.fixture
async def supervisor(factory, credential_store):
    supervisor = SessionSupervisor(factory, credential_store)
    await supervisor.start()
    yield supervisor
    await supervisor.stop()


@pytest.fixture
async def connected_supervisor(supervisor, factory):
    factory.current.emit(Connected())
    await drain(supervisor)
    assert supervisor.is_ready
    return supervisor


@pytest.fixture
def resolver(supervisor) -> DestinationResolver:
    return DestinationResolver(supervisor)


@pytest.fixture
def dispatcher(supervisor, resolver, attachments) -> OutboundDispatcher:
    return OutboundDispatcher(supervisor, resolver, attachments)

