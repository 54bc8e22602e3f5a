import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Mapping,
    Optional,
    Union,
)

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ._utils._ssl_context import get_httpx_client_kwargs

logger = logging.getLogger("restweave")

_CLOSE_TIMEOUT = 5.0


def is_retryable_exception(exception: BaseException) -> bool:
    # nothing reached the server, so even non-idempotent requests can be resent
    return isinstance(exception, (httpx.ConnectError, httpx.ConnectTimeout))


@dataclass
class TransportRequest:
    """A fully built HTTP message, ready to be sent."""

    method: str
    url: str
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    content: Optional[bytes] = None
    timeout: Optional[float] = None


class TransportResponse:
    """Response head plus a body stream that can be consumed once."""

    def __init__(
        self,
        status_code: int,
        headers: Union[httpx.Headers, Mapping[str, str], None] = None,
        stream: Optional[AsyncIterator[bytes]] = None,
        *,
        url: str = "",
        reason_phrase: str = "",
        http_version: str = "HTTP/1.1",
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        self.status_code = status_code
        self.headers = httpx.Headers(headers)
        self.url = url
        self.reason_phrase = reason_phrase
        self.http_version = http_version
        self._stream = stream
        self._on_close = on_close
        self._consumed = False
        self.is_closed = False

    @classmethod
    def from_bytes(
        cls,
        status_code: int,
        content: bytes = b"",
        headers: Union[httpx.Headers, Mapping[str, str], None] = None,
        **kwargs: Any,
    ) -> "TransportResponse":
        async def single_chunk() -> AsyncIterator[bytes]:
            if content:
                yield content

        return cls(status_code, headers, single_chunk(), **kwargs)

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        if self._consumed:
            raise RuntimeError("The response body has already been consumed")
        self._consumed = True
        if self._stream is None:
            return
        async for chunk in self._stream:
            if chunk:
                yield chunk

    async def aread(self) -> bytes:
        return b"".join([chunk async for chunk in self.aiter_bytes()])

    async def aclose(self) -> None:
        if self.is_closed:
            return
        self.is_closed = True
        if self._on_close is not None:
            await self._on_close()

    def __repr__(self) -> str:
        return f"<TransportResponse [{self.status_code} {self.reason_phrase}]>"


class Transport(ABC):
    """Sends built requests. Implement this to plug in another HTTP stack."""

    @abstractmethod
    async def send(self, request: TransportRequest) -> TransportResponse:
        """Send the request and return once the response head is available.

        Raises:
            httpx.TimeoutException, TimeoutError: When the request timed out.
            Exception: Any other transport failure.
        """

    async def aclose(self) -> None:
        pass


class HttpxTransport(Transport):
    """Transport backed by `httpx.AsyncClient`.

    httpx clients are bound to the event loop they are first used on, and the
    synchronous API of `RestClient` runs on its own loop, so one client is
    created per loop. A caller-supplied client is used as is and never closed.

    Args:
        client (Optional[httpx.AsyncClient]): Client to send requests with.
        follow_redirects (bool): Follow redirects on created clients.
        max_retries (int): Extra attempts after a connection failure.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        follow_redirects: bool = True,
        max_retries: int = 0,
    ) -> None:
        self._client = client
        self.follow_redirects = follow_redirects
        self.max_retries = max_retries
        self._clients: dict[asyncio.AbstractEventLoop, httpx.AsyncClient] = {}
        self._lock = threading.Lock()

    def _drop_closed_loops(self) -> None:
        """Forget clients whose loop is closed; they can no longer be closed."""
        for loop in [loop for loop in self._clients if loop.is_closed()]:
            client = self._clients.pop(loop)
            if not client.is_closed:
                logger.debug("Dropping httpx client of a closed event loop")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client

        loop = asyncio.get_running_loop()
        with self._lock:
            self._drop_closed_loops()
            client = self._clients.get(loop)
            if client is None or client.is_closed:
                client = httpx.AsyncClient(
                    **get_httpx_client_kwargs(follow_redirects=self.follow_redirects)
                )
                self._clients[loop] = client
        return client

    async def send(self, request: TransportRequest) -> TransportResponse:
        client = self._get_client()
        http_request = client.build_request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.content,
            timeout=(
                request.timeout
                if request.timeout is not None
                else httpx.USE_CLIENT_DEFAULT
            ),
        )

        def log_retry(retry_state: RetryCallState) -> None:
            logger.warning(
                f"Retrying {request.method} {request.url} "
                f"(attempt {retry_state.attempt_number + 1}): "
                f"{retry_state.outcome.exception() if retry_state.outcome else ''}"
            )

        retrying = AsyncRetrying(
            retry=retry_if_exception(is_retryable_exception),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=0.5, max=10),
            before_sleep=log_retry,
            reraise=True,
        )
        response = await retrying(client.send, http_request, stream=True)
        return TransportResponse(
            response.status_code,
            response.headers,
            response.aiter_bytes(),
            url=str(response.url),
            reason_phrase=response.reason_phrase,
            http_version=response.http_version,
            on_close=response.aclose,
        )

    async def aclose(self) -> None:
        """Close the clients created by this transport.

        Clients of other running loops are closed on their own loop; waiting
        for them is bounded so a busy loop cannot block this call.
        """
        with self._lock:
            self._drop_closed_loops()
            clients = list(self._clients.items())
            self._clients.clear()

        current_loop = asyncio.get_running_loop()
        pending = []
        for loop, client in clients:
            if loop is current_loop:
                await client.aclose()
            elif loop.is_running():
                pending.append(
                    asyncio.wrap_future(
                        asyncio.run_coroutine_threadsafe(client.aclose(), loop)
                    )
                )
            else:
                logger.debug("Cannot close httpx client of a stopped event loop")

        if pending:
            _, not_done = await asyncio.wait(pending, timeout=_CLOSE_TIMEOUT)
            for future in not_done:
                future.cancel()
            if not_done:
                logger.warning(
                    f"{len(not_done)} httpx client(s) did not close within "
                    f"{_CLOSE_TIMEOUT} seconds"
                )


class ResponseStream:
    """Body of a downloaded response, read chunk by chunk.

    Use it as an async context manager so the connection is released even
    when the body is not read to the end.

    Examples:
        ```python
        async with await client.download_stream_async(request) as stream:
            async for chunk in stream:
                sink.write(chunk)
        ```
    """

    def __init__(self, response: TransportResponse) -> None:
        self._response = response
        self.status_code = response.status_code
        self.headers = response.headers

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes():
                yield chunk
        finally:
            await self._response.aclose()

    async def aread(self) -> bytes:
        try:
            return await self._response.aread()
        finally:
            await self._response.aclose()

    async def aclose(self) -> None:
        await self._response.aclose()

    async def __aenter__(self) -> "ResponseStream":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
