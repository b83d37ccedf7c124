"""
Shared fixtures: an in-process fake of the Toosla storage API.

The fake reproduces the remote semantics the storage relies on:
- login: credentials containing ``fail-`` are refused (401)
- read: 401 without api key, 404 without snapshot, 304 when the snapshot
  is not newer than If-Modified-Since, 200 + Last-Modified otherwise
- write: 401 without api key, 412 when the snapshot is newer than
  If-Unmodified-Since, 200 + a new Last-Modified otherwise
"""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from toosla_storage import MemoryMedium, PasswordManager, StorageConfig, TooslaStorage

PIN = "1234"
CREDENTIALS = "user1:secret1"


def _iso(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _parse(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class FakeRemote:
    """In-memory Toosla API."""

    def __init__(self) -> None:
        self.snapshots: dict[str, dict] = {}
        self.failures: dict[str, list[int]] = {}
        self.delay = 0.0
        self.key_field = "validationkey"
        self.calls: list[tuple[str, dict]] = []

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/api/storage/login", self.login)
        app.router.add_post("/api/storage/read", self.read)
        app.router.add_post("/api/storage/write", self.write)
        return app

    # --- helpers used by tests ---

    def fail_next(self, command: str, status: int) -> None:
        self.failures.setdefault(command, []).append(status)

    def store(self, path: str, content: dict) -> datetime:
        """Put a snapshot on the remote as another device would."""
        previous = self.snapshots.get(path)
        now = datetime.now(timezone.utc)
        now = now.replace(microsecond=now.microsecond // 1000 * 1000)
        if previous and now <= previous["last_modified"]:
            now = previous["last_modified"] + timedelta(milliseconds=1)
        self.snapshots[path] = {"content": dict(content), "last_modified": now}
        return now

    def content(self, path: str = "/Toosla/data.json") -> Optional[dict]:
        snapshot = self.snapshots.get(path)
        return snapshot["content"] if snapshot else None

    def commands(self) -> list[str]:
        return [command for command, _ in self.calls]

    # --- handlers ---

    async def _prologue(
        self, command: str, request: web.Request
    ) -> tuple[dict, Optional[web.Response]]:
        """Record the call; return the body and a forced failure, if any."""
        body = await request.json()
        self.calls.append((command, dict(request.headers)))
        if self.delay:
            await asyncio.sleep(self.delay)
        pending = self.failures.get(command)
        if pending:
            return body, web.Response(status=pending.pop(0), text="forced failure")
        return body, None

    def _authorized(self, request: web.Request) -> bool:
        auth = request.headers.get("Authorization", "")
        key = auth[len("token "):] if auth.startswith("token ") else ""
        return bool(key) and key != "None"

    async def login(self, request: web.Request) -> web.Response:
        body, forced = await self._prologue("login", request)
        if forced is not None:
            return forced
        credentials = body.get("credentials", "")
        if "fail-" in credentials:
            return web.Response(status=401, text="unauthorized")
        return web.json_response({
            "account": credentials.split(":")[0],
            self.key_field: "key-" + credentials,
        })

    async def read(self, request: web.Request) -> web.Response:
        body, forced = await self._prologue("read", request)
        if forced is not None:
            return forced
        if not self._authorized(request):
            return web.Response(status=401, text="invalid authorization header")
        snapshot = self.snapshots.get(body["path"])
        if snapshot is None:
            return web.Response(status=404, text="not found")
        since = _parse(request.headers.get("If-Modified-Since"))
        if since is not None and snapshot["last_modified"] <= since:
            return web.Response(status=304)
        content = dict(snapshot["content"])
        content["lastModified"] = _iso(snapshot["last_modified"])
        return web.json_response(
            content, headers={"Last-Modified": _iso(snapshot["last_modified"])}
        )

    async def write(self, request: web.Request) -> web.Response:
        body, forced = await self._prologue("write", request)
        if forced is not None:
            return forced
        if not self._authorized(request):
            return web.Response(status=401, text="invalid authorization header")
        snapshot = self.snapshots.get(body["path"])
        since = _parse(request.headers.get("If-Unmodified-Since"))
        if since is not None and snapshot and snapshot["last_modified"] > since:
            return web.Response(status=412, text="the server has more recent data")
        last_modified = self.store(body["path"], body["content"])
        return web.Response(
            status=200, text="OK", headers={"Last-Modified": _iso(last_modified)}
        )


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
async def server(remote):
    srv = TestServer(remote.app())
    await srv.start_server()
    yield srv
    await srv.close()


@pytest.fixture
def config(server):
    return StorageConfig(url=str(server.make_url("/")), timeout=5)


@pytest.fixture
def local():
    return MemoryMedium()


@pytest.fixture
def passwd(local):
    pm = PasswordManager(local=local)
    pm.create_pin(PIN)
    pm.save_secret(PIN, "storage.credentials", CREDENTIALS)
    return pm


@pytest.fixture
async def storage(passwd, local, config):
    s = TooslaStorage(passwd, config=config, medium=local)
    yield s
    await s.close()


@pytest.fixture
async def linked(storage):
    """A storage logged in and synchronized with an empty remote."""
    await storage.login()
    await storage.sync()
    return storage
