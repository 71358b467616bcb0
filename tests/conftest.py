"""Shared fixtures: a fake CloudStack endpoint behind httpx.MockTransport."""

from typing import Any, Dict, List, Tuple, Union
from urllib.parse import parse_qsl

import httpx
import pytest

from cloudstack_sdk import CloudStackClient, CloudStackConfig, canonicalize, envelope_key, sign

API_URL = "https://cloud.example.com/client/api"
API_KEY = "test-api-key"
SECRET_KEY = "test-secret-key"


class FakeCloudStack:
    """Records every request and answers with canned envelopes per command."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.responses: Dict[str, Tuple[int, Union[dict, list, str]]] = {}

    def respond(self, command: str, body: Union[dict, list, str], status: int = 200) -> None:
        self.responses[command] = (status, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        command = self.params_of(request)["command"]

        status, body = self.responses.get(command, (200, {envelope_key(command): {}}))
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    @staticmethod
    def params_of(request: httpx.Request) -> Dict[str, str]:
        if request.method == "POST":
            return dict(parse_qsl(request.content.decode("ascii"), keep_blank_values=True))
        return dict(parse_qsl(request.url.query.decode("ascii"), keep_blank_values=True))

    @property
    def last_params(self) -> Dict[str, str]:
        return self.params_of(self.requests[-1])


def assert_signed(params: Dict[str, Any], secret_key: str = SECRET_KEY) -> None:
    """The transmitted signature matches the transmitted parameters."""
    unsigned = dict(params)
    signature = unsigned.pop("signature")
    assert sign(secret_key, canonicalize(unsigned)) == signature


@pytest.fixture
def config() -> CloudStackConfig:
    return CloudStackConfig(api_url=API_URL, api_key=API_KEY, secret_key=SECRET_KEY)


@pytest.fixture
def cloud() -> FakeCloudStack:
    return FakeCloudStack()


@pytest.fixture
async def http_client(cloud: FakeCloudStack):
    async with httpx.AsyncClient(transport=httpx.MockTransport(cloud.handler)) as http_client:
        yield http_client


@pytest.fixture
async def client(config: CloudStackConfig, http_client: httpx.AsyncClient):
    async with CloudStackClient(config, http_client=http_client) as client:
        yield client
