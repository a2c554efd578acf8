import asyncio

import httpx
import pytest

from library_console.services.http_client import ApiClient
from tests.fake_api import create_fake_api

BASE_URL = "http://testserver/api"


class FakeHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled and not self.fired:
            self.fired = True
            self.callback()


class FakeScheduler:
    """Records call_later requests so tests decide when timers fire."""

    def __init__(self):
        self.handles = []

    def __call__(self, delay, callback):
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def fire_all(self):
        for handle in list(self.handles):
            handle.fire()


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    # Tests expect the default plain output regardless of the developer's shell
    monkeypatch.delenv("LIB_CLI_OUTPUT", raising=False)


@pytest.fixture
def fake_api():
    return create_fake_api()


@pytest.fixture
def store(fake_api):
    return fake_api.state.store


@pytest.fixture
def calls(fake_api):
    return fake_api.state.calls


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def make_client(fake_api):
    def factory():
        return ApiClient(base_url=BASE_URL, transport=httpx.ASGITransport(app=fake_api))
    return factory


@pytest.fixture
def run_api(make_client):
    """Run ``scenario(api)`` in a fresh event loop against the fake API."""
    def runner(scenario):
        async def main():
            async with make_client() as api:
                return await scenario(api)
        return asyncio.run(main())
    return runner


@pytest.fixture
def failing_client():
    """Factory for an ApiClient whose transport raises ``exc_factory(request)``."""
    def factory(exc_factory):
        def handler(request):
            raise exc_factory(request)
        return ApiClient(base_url="http://localhost:5095/api", transport=httpx.MockTransport(handler))
    return factory
