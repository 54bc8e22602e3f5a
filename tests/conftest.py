import asyncio
from dataclasses import dataclass
from typing import Optional

import pytest
from pydantic import BaseModel, ConfigDict, Field

from restweave import RestClient, Transport, TransportRequest, TransportResponse


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clean environment variables before each test."""
    monkeypatch.delenv("RESTWEAVE_BASE_URL", raising=False)
    monkeypatch.delenv("RESTWEAVE_TIMEOUT", raising=False)


@pytest.fixture
def base_url() -> str:
    return "https://example.com/api"


@pytest.fixture
def client(base_url: str):
    with RestClient(base_url) as rest_client:
        yield rest_client


class User(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    first_name: str = Field(alias="firstName")
    email: Optional[str] = None


@dataclass
class Order:
    order_id: int
    status: str
    total: Optional[float] = None


class RecordingTransport(Transport):
    """Answers every request with a fixed response and keeps what was sent."""

    def __init__(
        self,
        status_code: int = 200,
        content: bytes = b"",
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}
        self.requests: list[TransportRequest] = []
        self.closed = False

    async def send(self, request: TransportRequest) -> TransportResponse:
        self.requests.append(request)
        return TransportResponse.from_bytes(
            self.status_code, self.content, self.headers, url=request.url
        )

    async def aclose(self) -> None:
        self.closed = True


class SlowTransport(Transport):
    def __init__(self, delay: float = 5.0) -> None:
        self.delay = delay

    async def send(self, request: TransportRequest) -> TransportResponse:
        await asyncio.sleep(self.delay)
        return TransportResponse.from_bytes(200)


class AbortingTransport(Transport):
    async def send(self, request: TransportRequest) -> TransportResponse:
        raise asyncio.CancelledError()


class FailingTransport(Transport):
    def __init__(self, exception: Exception) -> None:
        self.exception = exception

    async def send(self, request: TransportRequest) -> TransportResponse:
        raise self.exception
