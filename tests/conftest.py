import asyncio
import json
import sys
import threading
from contextlib import asynccontextmanager
from pathlib import Path

import pytest
from websockets.asyncio.server import serve

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class FakeResponse:
    """Stands in for requests.Response in discovery/lookup tests."""

    def __init__(self, status_code=200, payload=None, body_error=None):
        self.status_code = status_code
        self.payload = payload
        self.body_error = body_error
        self.json_calls = 0

    def json(self):
        self.json_calls += 1
        if self.body_error is not None:
            raise self.body_error
        return self.payload


class RecordingGet:
    """Replacement for requests.get that records calls and returns canned responses."""

    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def __call__(self, url, params=None, timeout=None, **kwargs):
        self.calls.append({"url": url, "params": dict(params or {}), "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.response


class StaticBootstrapper:
    """Discovery stub: hands back a fixed endpoint and remembers the credential."""

    def __init__(self, url):
        self.url = url
        self.credentials = []

    def bootstrap(self, credential):
        self.credentials.append(credential)
        return self.url


class FakeRTMServer:
    """
    Local WebSocket server speaking just enough RTM for session tests.

    Records every frame it receives and, with auto_ack on, answers each one
    with {"ok": true, "reply_to": id, "ts": ..., "text": ...}, or with a
    failed ack when nack is set. ``greeting`` frames go out on connect.
    """

    def __init__(self, auto_ack=True, hello=False, close_on_connect=False, subprotocols=None,
                 greeting=(), nack=False):
        self.auto_ack = auto_ack
        self.hello = hello
        self.close_on_connect = close_on_connect
        self.subprotocols = subprotocols
        self.greeting = list(greeting)
        self.nack = nack
        self.frames = []
        self.origins = []
        self.negotiated = []
        self.connections = []
        self.url = None

    async def handler(self, ws):
        self.connections.append(ws)
        self.origins.append(ws.request.headers.get("Origin"))
        self.negotiated.append(ws.subprotocol)
        for frame in self.greeting:
            await ws.send(json.dumps(frame))
        if self.close_on_connect:
            await ws.close(code=1001, reason="going away")
            return
        if self.hello:
            await ws.send(json.dumps({"type": "hello"}))
        async for raw in ws:
            data = json.loads(raw)
            self.frames.append(data)
            if self.nack:
                await ws.send(json.dumps({
                    "ok": False,
                    "reply_to": data["id"],
                    "error": {"code": 2, "msg": "message text is missing"},
                }))
            elif self.auto_ack:
                await ws.send(json.dumps({
                    "ok": True,
                    "reply_to": data["id"],
                    "ts": f"1355517523.{data['id']:06d}",
                    "text": data.get("text", ""),
                }))

    async def push(self, frame):
        """Send a raw frame (str) or a dict to every connected client."""
        raw = frame if isinstance(frame, str) else json.dumps(frame)
        for ws in self.connections:
            await ws.send(raw)

    @asynccontextmanager
    async def running(self):
        async with serve(self.handler, "127.0.0.1", 0, subprotocols=self.subprotocols) as server:
            port = server.sockets[0].getsockname()[1]
            self.url = f"ws://127.0.0.1:{port}/rtm/session"
            yield self


class ThreadedRTMServer:
    """
    Runs a FakeRTMServer on its own event loop in a background thread, for
    code under test that calls asyncio.run() itself (the CLI commands).
    """

    def __init__(self, server):
        self.server = server
        self._ready = threading.Event()
        self._loop = None
        self._stop = None
        self._thread = threading.Thread(target=self._run, daemon=True)

    def _run(self):
        asyncio.run(self._serve())

    async def _serve(self):
        self._loop = asyncio.get_running_loop()
        self._stop = asyncio.Event()
        async with self.server.running():
            self._ready.set()
            await self._stop.wait()

    def __enter__(self):
        self._thread.start()
        if not self._ready.wait(timeout=5):
            raise RuntimeError("fake RTM server did not start")
        return self.server

    def __exit__(self, *exc):
        self._loop.call_soon_threadsafe(self._stop.set)
        self._thread.join(timeout=5)


@pytest.fixture(autouse=True)
def no_proxy(monkeypatch):
    # websockets honours proxy env vars; local test servers must be dialed directly
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def recording_get():
    return RecordingGet


@pytest.fixture
def static_bootstrapper():
    return StaticBootstrapper


@pytest.fixture
def rtm_server():
    return FakeRTMServer


async def wait_for(predicate, timeout=3.0):
    loop = asyncio.get_running_loop()
    end = loop.time() + timeout
    while loop.time() < end:
        if predicate():
            return True
        await asyncio.sleep(0.02)
    return False


@pytest.fixture
def eventually():
    return wait_for


@pytest.fixture
def threaded_server():
    return ThreadedRTMServer
