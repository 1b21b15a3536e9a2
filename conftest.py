import asyncio

import httpx
import pytest

from mtlink.config import MoneytreeConfig
from mtlink.core.client import MoneytreeClient

BASE_URL = "https://jp-api-staging.getmoneytree.com"
CLIENT_ID = "test-client-id"
CLIENT_SECRET = "test-client-secret"
ACCESS_TOKEN = "guest-access-token"


class RecordingHandler:
    """MockTransport handler that keeps every request it answers."""

    def __init__(self, responder):
        self.responder = responder
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def config():
    return MoneytreeConfig(base_url=BASE_URL, client_id=CLIENT_ID, client_secret=CLIENT_SECRET)


@pytest.fixture
def make_client(config):
    """Build a client answering every request with ``responder``."""

    def factory(responder):
        handler = RecordingHandler(responder)
        return MoneytreeClient(config, transport=httpx.MockTransport(handler)), handler

    return factory


@pytest.fixture
def json_client(make_client):
    """Client whose every response is ``status`` with ``payload`` as JSON."""

    def factory(payload, status=200):
        return make_client(lambda request: httpx.Response(status, json=payload))

    return factory


@pytest.fixture
def run():
    """Await ``call(client)`` inside a fresh event loop, closing the client afterwards."""

    def runner(client, call):
        async def scenario():
            async with client:
                return await call(client)

        return asyncio.run(scenario())

    return runner
