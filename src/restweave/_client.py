import asyncio
import codecs
import os
from logging import getLogger
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Iterator,
    Mapping,
    Optional,
    TypeVar,
    Union,
    overload,
)

import httpx

from ._config import RestClientOptions
from ._interceptors import Interceptor
from ._transport import (
    HttpxTransport,
    ResponseStream,
    Transport,
    TransportRequest,
    TransportResponse,
)
from ._utils import iterate_sync, run_sync, setup_logging
from ._utils._url_builder import build_uri, encode_query_parameter, ensure_valid_base_url
from ._utils.constants import (
    ENV_BASE_URL,
    HEADER_ACCEPT,
    HEADER_CONTENT_TYPE,
    HEADER_COOKIE,
    HEADER_USER_AGENT,
)
from ._verbs import VerbsMixin
from .models import (
    ContentType,
    DataFormat,
    DefaultParameters,
    HttpRequestError,
    Method,
    Parameter,
    ParameterType,
    ResponseStatus,
    RestRequest,
    RestResponse,
)
from .serializers import RestSerializers, SerializerConfig

T = TypeVar("T")

_QUERY_TYPES = (ParameterType.QUERY_STRING, ParameterType.GET_OR_POST)


class RestClient(VerbsMixin):
    """Executes `RestRequest` objects against a base URL.

    Every operation is available as a coroutine (`*_async`) and as a blocking
    method. Blocking methods run the coroutine on a background event loop, so
    they can also be called from code running inside an event loop.

    Failures are reported on the returned `RestResponse` rather than raised,
    unless `throw_on_any_error` is set. The typed convenience methods (`get`,
    `post`, ...) raise when the response is not successful.

    Args:
        options (Union[RestClientOptions, str, None]): Client options or a base
            URL. When no base URL is given it is read from the
            `RESTWEAVE_BASE_URL` environment variable.
        transport (Optional[Transport]): Transport used to send requests.
            Defaults to an httpx based transport.
        http_client (Optional[httpx.AsyncClient]): httpx client for the default
            transport. Cannot be combined with `transport`.
        configure_serialization (Optional[Callable[[SerializerConfig], Any]]):
            Callback adjusting the registered serializers.

    Raises:
        InvalidUrlError: If the base URL is not an absolute http(s) URL.

    Examples:
        ```python
        from restweave import RestClient, RestRequest

        with RestClient("https://api.example.com") as client:
            user = client.get(RestRequest("users/{id}").add_url_segment("id", 1), User)
        ```
    """

    def __init__(
        self,
        options: Union[RestClientOptions, str, None] = None,
        *,
        transport: Optional[Transport] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        configure_serialization: Optional[Callable[[SerializerConfig], Any]] = None,
    ) -> None:
        self._logger = getLogger("restweave")

        if isinstance(options, str):
            options = RestClientOptions.from_env(base_url=ensure_valid_base_url(options))
        elif options is None:
            env_base_url = os.getenv(ENV_BASE_URL)
            if env_base_url:
                ensure_valid_base_url(env_base_url)
            options = RestClientOptions.from_env()
        elif options.base_url is None and os.getenv(ENV_BASE_URL):
            options = options.model_copy(
                update={"base_url": ensure_valid_base_url(os.environ[ENV_BASE_URL])}
            )
        self.options = options

        if options.debug:
            setup_logging(should_debug=True)

        config = SerializerConfig().use_default_serializers()
        if configure_serialization is not None:
            configure_serialization(config)
        self.serializers = RestSerializers(config.serializers)

        self.default_parameters = DefaultParameters(
            options.allow_multiple_default_parameters_with_same_name
        )

        if transport is not None and http_client is not None:
            raise ValueError("Pass either a transport or an http_client, not both")
        self._owns_transport = transport is None
        self._transport = transport or HttpxTransport(
            http_client,
            follow_redirects=options.follow_redirects,
            max_retries=options.max_retries,
        )

        self._logger.debug(f"BASE URL: {options.base_url}")

    def __repr__(self) -> str:
        return f"RestClient(base_url={self.options.base_url!r})"

    # Default parameters

    def add_default_parameter(
        self,
        name_or_parameter: Union[str, Parameter],
        value: Any = None,
        type: ParameterType = ParameterType.GET_OR_POST,
    ) -> "RestClient":
        """Add a parameter sent with every request.

        Raises:
            ValueError: For body parameters, and for names that are already
                used by a header, cookie or URL segment default unless
                `allow_multiple_default_parameters_with_same_name` is set.
        """
        if isinstance(name_or_parameter, Parameter):
            self.default_parameters.add_parameter(name_or_parameter)
            return self

        request = RestRequest().add_parameter(name_or_parameter, value, type)
        for parameter in request.parameters:
            self.default_parameters.add_parameter(parameter)
        return self

    def add_default_header(self, name: str, value: Any) -> "RestClient":
        return self.add_default_parameter(name, str(value), ParameterType.HTTP_HEADER)

    def add_default_headers(self, headers: Mapping[str, Any]) -> "RestClient":
        for name, value in headers.items():
            self.add_default_header(name, value)
        return self

    def add_default_query_parameter(self, name: str, value: Any) -> "RestClient":
        return self.add_default_parameter(name, value, ParameterType.QUERY_STRING)

    def add_default_url_segment(self, name: str, value: Any) -> "RestClient":
        return self.add_default_parameter(name, value, ParameterType.URL_SEGMENT)

    # Request building

    def _merged_parameters(
        self, request: RestRequest, types: tuple[ParameterType, ...]
    ) -> list[Parameter]:
        """Request parameters first, then the defaults they do not shadow."""
        own = [p for p in request.parameters if p.type in types]
        defaults = [
            p
            for p in self.default_parameters
            if p.type in types
            and not any(o.type == p.type and o.matches_name(p.name) for o in own)
        ]
        return own + defaults

    def _query_types(self, request: RestRequest) -> tuple[ParameterType, ...]:
        if request.method.allows_body and not request.has_body:
            # GET-or-POST parameters go to the form body
            return (ParameterType.QUERY_STRING,)
        return _QUERY_TYPES

    def build_uri(self, request: RestRequest) -> str:
        """Resolve the absolute URI of a request.

        Raises:
            InvalidUrlError: If the resource is relative and there is no base URL.
        """
        return build_uri(
            self.options.base_url,
            request.resource,
            self._merged_parameters(request, (ParameterType.URL_SEGMENT,)),
            self._merged_parameters(request, self._query_types(request)),
        )

    def _build_body(self, request: RestRequest) -> tuple[Optional[bytes], Optional[str]]:
        body = request.body
        if body is not None:
            serialized = self.serializers.serialize_body(body)
            if serialized is None:
                return None, None
            if isinstance(serialized, str):
                serialized = serialized.encode(self.options.encoding)
            content_type = body.content_type or ContentType.from_data_format(
                body.data_format
            )
            return serialized, content_type

        if request.method.allows_body:
            form = self._merged_parameters(request, (ParameterType.GET_OR_POST,))
            if form:
                content = "&".join(encode_query_parameter(p) for p in form)
                return content.encode(self.options.encoding), ContentType.FORM_URL_ENCODED

        return None, None

    def build_request(self, request: RestRequest) -> TransportRequest:
        """Build the HTTP message for a request without sending it."""
        url = self.build_uri(request)
        content, content_type = self._build_body(request)

        headers = httpx.Headers(
            [
                (p.name or "", "" if p.value is None else str(p.value))
                for p in self._merged_parameters(request, (ParameterType.HTTP_HEADER,))
            ]
        )
        accept = self.serializers.accept_header
        if HEADER_ACCEPT not in headers and accept:
            headers[HEADER_ACCEPT] = accept
        if HEADER_USER_AGENT not in headers and self.options.user_agent:
            headers[HEADER_USER_AGENT] = self.options.user_agent

        cookies = "; ".join(
            f"{p.name}={'' if p.value is None else p.value}"
            for p in self._merged_parameters(request, (ParameterType.COOKIE,))
        )
        if cookies:
            existing = headers.get(HEADER_COOKIE)
            headers[HEADER_COOKIE] = f"{existing}; {cookies}" if existing else cookies

        if content is not None and content_type and HEADER_CONTENT_TYPE not in headers:
            headers[HEADER_CONTENT_TYPE] = content_type

        return TransportRequest(
            method=request.method.value,
            url=url,
            headers=headers,
            content=content,
            timeout=self._timeout(request),
        )

    # Execution

    def _interceptors(self, request: RestRequest) -> list[Interceptor]:
        return [*self.options.interceptors, *request.interceptors]

    def _timeout(self, request: RestRequest) -> float:
        return request.timeout or self.options.timeout

    async def _send_async(self, request: RestRequest) -> TransportResponse:
        interceptors = self._interceptors(request)

        for interceptor in interceptors:
            await interceptor.before_request(request)

        message = self.build_request(request)
        for interceptor in interceptors:
            await interceptor.before_http_request(message)

        self._logger.debug(f"Request: {message.method} {message.url}")
        self._logger.debug(f"HEADERS: {message.headers}")

        response = await self._transport.send(message)
        try:
            for interceptor in interceptors:
                await interceptor.after_http_request(response)
        except BaseException:
            await response.aclose()
            raise

        self._logger.debug(f"Response: {response.status_code} {response.reason_phrase}")
        return response

    def _error_response(
        self, request: RestRequest, exception: BaseException
    ) -> RestResponse[Any]:
        response = RestResponse.from_error(request, exception)
        if response.response_status == ResponseStatus.TIMED_OUT:
            self._logger.warning(f"Request timed out: {request.method.value} {request.resource}")
        elif response.response_status == ResponseStatus.ABORTED:
            self._logger.warning(f"Request aborted: {request.method.value} {request.resource}")
        else:
            self._logger.warning(f"Request failed: {exception}")
        return response

    async def _execute_async(self, request: RestRequest) -> RestResponse[Any]:
        try:
            async with asyncio.timeout(self._timeout(request)):
                transport_response = await self._send_async(request)
                try:
                    raw_bytes = await transport_response.aread()
                finally:
                    await transport_response.aclose()
            response = RestResponse.from_content(
                request,
                status_code=transport_response.status_code,
                headers=transport_response.headers,
                raw_bytes=raw_bytes,
                reason_phrase=transport_response.reason_phrase,
                url=transport_response.url,
                default_encoding=self.options.encoding,
            )
        except asyncio.CancelledError as e:
            if _is_cancelling():
                raise
            return self._error_response(request, e)
        except Exception as e:
            return self._error_response(request, e)

        if (
            not response.is_success_status_code
            and self.options.error_when_unsuccessful_status_code
        ):
            response = response.with_error(
                HttpRequestError.for_status(response.status_code, response)
            )
        return response

    @overload
    async def execute_async(
        self,
        request: RestRequest,
        response_type: None = None,
        *,
        method: Union[Method, str, None] = None,
    ) -> RestResponse[Any]: ...

    @overload
    async def execute_async(
        self,
        request: RestRequest,
        response_type: type[T],
        *,
        method: Union[Method, str, None] = None,
    ) -> RestResponse[T]: ...

    async def execute_async(
        self,
        request: RestRequest,
        response_type: Any = None,
        *,
        method: Union[Method, str, None] = None,
    ) -> RestResponse[Any]:
        """Execute a request.

        Args:
            request (RestRequest): The request to execute.
            response_type: Type to deserialize the content to. Without it the
                response carries the raw content only.
            method (Union[Method, str, None]): Overrides the request method.

        Returns:
            RestResponse: The response. Transport, status code and
                deserialization failures are reported on it.

        Raises:
            Exception: The response error, when `throw_on_any_error` is set.
        """
        if method is not None:
            request.method = Method(method.upper() if isinstance(method, str) else method)

        response = await self._execute_async(request)
        if response_type is not None:
            response = await self.serializers.deserialize(
                request,
                response,
                self.options,
                response_type,
                self._interceptors(request),
            )

        if self.options.throw_on_any_error:
            response.throw_if_error()
        return response

    @overload
    def execute(
        self,
        request: RestRequest,
        response_type: None = None,
        *,
        method: Union[Method, str, None] = None,
    ) -> RestResponse[Any]: ...

    @overload
    def execute(
        self,
        request: RestRequest,
        response_type: type[T],
        *,
        method: Union[Method, str, None] = None,
    ) -> RestResponse[T]: ...

    def execute(
        self,
        request: RestRequest,
        response_type: Any = None,
        *,
        method: Union[Method, str, None] = None,
    ) -> RestResponse[Any]:
        return run_sync(self.execute_async(request, response_type, method=method))

    async def deserialize_async(
        self, response: RestResponse[Any], response_type: Any
    ) -> RestResponse[Any]:
        """Deserialize the content of an existing response to another type."""
        request = response.request or RestRequest()
        return await self.serializers.deserialize(
            request, response, self.options, response_type, self._interceptors(request)
        )

    def deserialize(
        self, response: RestResponse[Any], response_type: Any
    ) -> RestResponse[Any]:
        return run_sync(self.deserialize_async(response, response_type))

    # Downloads

    async def download_stream_async(
        self, request: RestRequest
    ) -> Optional[ResponseStream]:
        """Send a request and return its body as a stream.

        The timeout covers the request up to the response headers.

        Returns:
            Optional[ResponseStream]: None when the request fails, unless
                `throw_on_any_error` is set.
        """
        try:
            async with asyncio.timeout(self._timeout(request)):
                transport_response = await self._send_async(request)
        except asyncio.CancelledError as e:
            if _is_cancelling():
                raise
            return self._failed_download(request, e)
        except Exception as e:
            return self._failed_download(request, e)

        if not 200 <= transport_response.status_code <= 299:
            await transport_response.aclose()
            return self._failed_download(
                request, HttpRequestError.for_status(transport_response.status_code)
            )

        return ResponseStream(transport_response)

    def _failed_download(self, request: RestRequest, exception: BaseException) -> None:
        response = self._error_response(request, exception)
        if self.options.throw_on_any_error:
            response.throw_if_error()
        return None

    async def download_data_async(self, request: RestRequest) -> Optional[bytes]:
        """Send a request and return the whole body, or None on failure."""
        stream = await self.download_stream_async(request)
        if stream is None:
            return None
        try:
            return await stream.aread()
        except Exception as e:
            return self._failed_download(request, e)

    def download_stream(self, request: RestRequest) -> Optional[Iterator[bytes]]:
        stream = run_sync(self.download_stream_async(request))
        if stream is None:
            return None
        return iterate_sync(aiter(stream))

    def download_data(self, request: RestRequest) -> Optional[bytes]:
        return run_sync(self.download_data_async(request))

    async def stream_json_async(
        self,
        request_or_resource: Union[RestRequest, str],
        response_type: Any = None,
    ) -> AsyncIterator[Any]:
        """Yield one deserialized value per line of a JSON lines response.

        Blank lines are skipped. Nothing is yielded when the request fails.

        Examples:
            ```python
            async for event in client.stream_json_async("events", Event):
                handle(event)
            ```
        """
        request = self._as_request(request_or_resource, Method.GET)
        stream = await self.download_stream_async(request)
        if stream is None:
            return

        serializer = self.serializers.get_serializer(DataFormat.JSON)
        decoder = codecs.getincrementaldecoder(self.options.encoding)(errors="replace")
        buffer = ""
        async with stream:
            async for chunk in stream:
                buffer += decoder.decode(chunk)
                *lines, buffer = buffer.split("\n")
                for line in lines:
                    if line.strip():
                        yield serializer.deserialize(
                            _line_response(request, line), response_type
                        )

            buffer += decoder.decode(b"", final=True)
            if buffer.strip():
                yield serializer.deserialize(_line_response(request, buffer), response_type)

    def stream_json(
        self,
        request_or_resource: Union[RestRequest, str],
        response_type: Any = None,
    ) -> Iterator[Any]:
        return iterate_sync(self.stream_json_async(request_or_resource, response_type))

    # Lifecycle

    async def aclose(self) -> None:
        if self._owns_transport:
            await self._transport.aclose()

    def close(self) -> None:
        run_sync(self.aclose())

    async def __aenter__(self) -> "RestClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    def __enter__(self) -> "RestClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def _is_cancelling() -> bool:
    """Whether the current task itself is being cancelled."""
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


def _line_response(request: RestRequest, line: str) -> RestResponse[Any]:
    return RestResponse(
        request=request,
        status_code=200,
        content=line,
        raw_bytes=line.encode("utf-8"),
        content_type=ContentType.JSON,
        response_status=ResponseStatus.COMPLETED,
    )
