import asyncio
import logging
import threading

import httpx
import pydantic
import pytest
from pytest_httpx import HTTPXMock

from restweave import (
    ContentType,
    DataFormat,
    DeserializationError,
    HttpRequestError,
    Interceptor,
    InvalidUrlError,
    Method,
    ParameterType,
    RequestAbortedError,
    RequestTimeoutError,
    ResponseStatus,
    RestClient,
    RestClientOptions,
    RestRequest,
    RestResponse,
)

from tests.conftest import (
    AbortingTransport,
    FailingTransport,
    Order,
    RecordingTransport,
    SlowTransport,
    User,
)

USER_JSON = {"id": 1, "firstName": "Ada", "email": "ada@example.com"}
INVALID_USER = b'{"id":"x"}'
JSON_HEADERS = {"Content-Type": "application/json"}


class RecordingInterceptor(Interceptor):
    def __init__(self, name: str, calls: list[str]) -> None:
        self.name = name
        self.calls = calls

    async def before_request(self, request):
        self.calls.append(f"{self.name}.before_request")

    async def before_http_request(self, request):
        self.calls.append(f"{self.name}.before_http_request")

    async def after_http_request(self, response):
        self.calls.append(f"{self.name}.after_http_request")

    async def before_deserialization(self, response):
        self.calls.append(f"{self.name}.before_deserialization")

    async def after_deserialization(self, response):
        self.calls.append(f"{self.name}.after_deserialization")


class TestRestClientInit:
    def test_base_url_string(self, base_url: str):
        client = RestClient(base_url)

        assert client.options.base_url == base_url

    def test_invalid_base_url(self):
        with pytest.raises(InvalidUrlError):
            RestClient("not a url")

    def test_base_url_from_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("RESTWEAVE_BASE_URL", "https://env.example.com")

        assert RestClient().options.base_url == "https://env.example.com"
        assert (
            RestClient(RestClientOptions(timeout=5)).options.base_url
            == "https://env.example.com"
        )

    def test_invalid_base_url_from_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("RESTWEAVE_BASE_URL", "ftp://env.example.com")

        with pytest.raises(InvalidUrlError):
            RestClient()

    def test_timeout_from_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("RESTWEAVE_TIMEOUT", "2.5")

        assert RestClient("https://example.com").options.timeout == 2.5

    def test_options_are_validated(self):
        with pytest.raises(pydantic.ValidationError):
            RestClientOptions(timeout=0)

    def test_transport_and_http_client_are_exclusive(self, base_url: str):
        with pytest.raises(ValueError):
            RestClient(
                base_url, transport=RecordingTransport(), http_client=httpx.AsyncClient()
            )

    def test_debug_enables_debug_logging(self, base_url: str):
        RestClient(RestClientOptions(base_url=base_url, debug=True))

        assert logging.getLogger("restweave").level == logging.DEBUG

    def test_default_body_parameter_is_rejected(self, base_url: str):
        client = RestClient(base_url)

        with pytest.raises(ValueError):
            client.add_default_parameter("body", "x", ParameterType.REQUEST_BODY)

    def test_duplicate_default_header_is_rejected(self, base_url: str):
        client = RestClient(base_url).add_default_header("X-Key", "1")

        with pytest.raises(ValueError):
            client.add_default_header("X-Key", "2")


class TestBuildRequest:
    def test_default_headers(self, base_url: str):
        message = RestClient(base_url).build_request(RestRequest("users"))

        assert message.method == "GET"
        assert message.url == f"{base_url}/users"
        assert message.headers["Accept"] == (
            "application/json, text/json, text/x-json, text/javascript, *+json, "
            "text/plain"
        )
        assert message.headers["User-Agent"].startswith("RestWeave.Python/")
        assert message.content is None
        assert "Content-Type" not in message.headers

    def test_request_headers_shadow_defaults(self, base_url: str):
        client = RestClient(base_url).add_default_headers(
            {"X-Trace": "default", "X-Client": "tests"}
        )
        request = RestRequest("users").add_header("x-trace", "request")

        message = client.build_request(request)

        assert message.headers.get_list("X-Trace") == ["request"]
        assert message.headers["X-Client"] == "tests"

    def test_accept_and_user_agent_can_be_overridden(self, base_url: str):
        client = RestClient(RestClientOptions(base_url=base_url, user_agent="agent/1"))
        request = RestRequest("users").add_header("Accept", "text/csv")

        message = client.build_request(request)

        assert message.headers["Accept"] == "text/csv"
        assert message.headers["User-Agent"] == "agent/1"

    def test_cookies(self, base_url: str):
        client = RestClient(base_url).add_default_parameter(
            "theme", "dark", ParameterType.COOKIE
        )
        request = RestRequest("users").add_cookie("session", "abc")

        message = client.build_request(request)

        assert message.headers["Cookie"] == "session=abc; theme=dark"

    def test_json_body(self, base_url: str):
        request = RestRequest("users", Method.POST).add_json_body(
            User(id=1, first_name="Ada")
        )

        message = RestClient(base_url).build_request(request)

        assert message.content == b'{"id":1,"firstName":"Ada","email":null}'
        assert message.headers["Content-Type"] == ContentType.JSON

    def test_string_body_keeps_content_type(self, base_url: str):
        request = RestRequest("users", Method.POST).add_string_body(
            "<a/>", "application/xml"
        )

        message = RestClient(base_url).build_request(request)

        assert message.content == b"<a/>"
        assert message.headers["Content-Type"] == "application/xml"

    def test_form_body(self, base_url: str):
        request = (
            RestRequest("login", Method.POST)
            .add_parameter("user", "ada")
            .add_parameter("note", "x y")
        )

        message = RestClient(base_url).build_request(request)

        assert message.url == f"{base_url}/login"
        assert message.content == b"user=ada&note=x%20y"
        assert message.headers["Content-Type"] == ContentType.FORM_URL_ENCODED

    def test_xml_body_requires_xml_serializer(self, base_url: str):
        request = RestRequest("orders", Method.POST).add_xml_body(Order(1, "open"))
        client = RestClient(base_url, configure_serialization=lambda c: c.use_xml())

        message = client.build_request(request)

        assert b"<Order><order_id>1</order_id>" in message.content
        assert message.headers["Content-Type"] == ContentType.XML

    def test_default_parameters(self, base_url: str):
        client = (
            RestClient(base_url)
            .add_default_query_parameter("api-version", "2")
            .add_default_url_segment("tenant", "acme")
        )

        assert (
            client.build_uri(RestRequest("{tenant}/users"))
            == f"{base_url}/acme/users?api-version=2"
        )
        assert (
            client.build_uri(
                RestRequest("{tenant}/users")
                .add_url_segment("tenant", "other")
                .add_query_parameter("api-version", "3")
            )
            == f"{base_url}/other/users?api-version=3"
        )

    def test_request_timeout_overrides_client_timeout(self, base_url: str):
        client = RestClient(RestClientOptions(base_url=base_url, timeout=30))

        assert client.build_request(RestRequest("a")).timeout == 30
        assert client.build_request(RestRequest("a", timeout=2)).timeout == 2


class TestExecuteAsync:
    @pytest.mark.anyio
    async def test_typed_response(self, httpx_mock: HTTPXMock, base_url: str):
        httpx_mock.add_response(url=f"{base_url}/users/1", json=USER_JSON)

        async with RestClient(base_url) as client:
            response = await client.execute_async(
                RestRequest("users/{id}").add_url_segment("id", 1), User
            )

        assert response.is_successful
        assert response.response_status == ResponseStatus.COMPLETED
        assert response.status_code == 200
        assert response.content_type == "application/json"
        assert response.data == User(id=1, first_name="Ada", email="ada@example.com")
        assert response.response_uri == f"{base_url}/users/1"

    @pytest.mark.anyio
    async def test_untyped_response_keeps_content(
        self, httpx_mock: HTTPXMock, base_url: str
    ):
        httpx_mock.add_response(url=f"{base_url}/ping", text="pong")

        async with RestClient(base_url) as client:
            response = await client.execute_async(RestRequest("ping"))

        assert response.content == "pong"
        assert response.raw_bytes == b"pong"
        assert response.data is None

    @pytest.mark.anyio
    async def test_method_override(self, httpx_mock: HTTPXMock, base_url: str):
        httpx_mock.add_response(method="DELETE", url=f"{base_url}/users/1")

        async with RestClient(base_url) as client:
            response = await client.execute_async(RestRequest("users/1"), method="delete")

        assert response.is_successful
        assert httpx_mock.get_request().method == "DELETE"

    @pytest.mark.anyio
    async def test_unsuccessful_status_code(self, httpx_mock: HTTPXMock, base_url: str):
        httpx_mock.add_response(url=f"{base_url}/users/2", status_code=404, text="nope")

        async with RestClient(base_url) as client:
            response = await client.execute_async(RestRequest("users/2"), User)

        assert not response.is_successful
        assert response.response_status == ResponseStatus.ERROR
        assert isinstance(response.error_exception, HttpRequestError)
        assert response.error_exception.status_code == 404
        assert response.content == "nope"
        assert response.data is None

    @pytest.mark.anyio
    async def test_unsuccessful_status_code_without_error(
        self, httpx_mock: HTTPXMock, base_url: str
    ):
        httpx_mock.add_response(url=f"{base_url}/users/2", status_code=404)
        options = RestClientOptions(
            base_url=base_url, error_when_unsuccessful_status_code=False
        )

        async with RestClient(options) as client:
            response = await client.execute_async(RestRequest("users/2"))

        assert response.response_status == ResponseStatus.COMPLETED
        assert not response.is_successful
        assert response.error_exception is None
        with pytest.raises(HttpRequestError):
            response.throw_if_error()

    @pytest.mark.anyio
    async def test_throw_on_any_error(self, httpx_mock: HTTPXMock, base_url: str):
        httpx_mock.add_response(url=f"{base_url}/fail", status_code=500)
        options = RestClientOptions(base_url=base_url, throw_on_any_error=True)

        async with RestClient(options) as client:
            with pytest.raises(HttpRequestError) as exc_info:
                await client.execute_async(RestRequest("fail"))

        assert exc_info.value.status_code == 500

    @pytest.mark.anyio
    async def test_transport_error(self, httpx_mock: HTTPXMock, base_url: str):
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))

        async with RestClient(base_url) as client:
            response = await client.execute_async(RestRequest("users"))

        assert response.response_status == ResponseStatus.ERROR
        assert response.error_message == "connection refused"
        assert isinstance(response.error_exception, httpx.ConnectError)

    @pytest.mark.anyio
    async def test_httpx_timeout(self, httpx_mock: HTTPXMock, base_url: str):
        httpx_mock.add_exception(httpx.ReadTimeout("too slow"))

        async with RestClient(base_url) as client:
            response = await client.execute_async(RestRequest("users"))

        assert response.response_status == ResponseStatus.TIMED_OUT

    @pytest.mark.anyio
    async def test_timeout(self, base_url: str):
        client = RestClient(base_url, transport=SlowTransport(delay=5))

        response = await client.execute_async(RestRequest("slow", timeout=0.05))

        assert response.response_status == ResponseStatus.TIMED_OUT
        assert isinstance(response.error_exception, TimeoutError)
        cause = response.error_exception.__cause__ or response.error_exception.__context__
        assert isinstance(cause, asyncio.CancelledError)
        with pytest.raises(RequestTimeoutError):
            response.throw_if_error()

    @pytest.mark.anyio
    async def test_timeout_raises_when_configured(self, base_url: str):
        options = RestClientOptions(base_url=base_url, timeout=0.05, throw_on_any_error=True)
        client = RestClient(options, transport=SlowTransport(delay=5))

        with pytest.raises(TimeoutError):
            await client.execute_async(RestRequest("slow"))

    @pytest.mark.anyio
    async def test_aborted(self, base_url: str):
        client = RestClient(base_url, transport=AbortingTransport())

        response = await client.execute_async(RestRequest("abort"))

        assert response.response_status == ResponseStatus.ABORTED
        with pytest.raises(RequestAbortedError):
            response.throw_if_error()

    @pytest.mark.anyio
    async def test_caller_cancellation_propagates(self, base_url: str):
        client = RestClient(base_url, transport=SlowTransport(delay=5))

        task = asyncio.create_task(client.execute_async(RestRequest("slow")))
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.anyio
    async def test_unexpected_transport_failure(self, base_url: str):
        client = RestClient(base_url, transport=FailingTransport(RuntimeError("boom")))

        response = await client.execute_async(RestRequest("x"))

        assert response.response_status == ResponseStatus.ERROR
        assert response.error_message == "boom"

    @pytest.mark.anyio
    async def test_malformed_content_length(self, base_url: str):
        transport = RecordingTransport(
            content=b"{}", headers={**JSON_HEADERS, "Content-Length": "abc"}
        )
        client = RestClient(base_url, transport=transport)

        response = await client.execute_async(RestRequest("r"), dict)

        assert response.response_status == ResponseStatus.COMPLETED
        assert response.content_length == 2
        assert response.data == {}


class TestDeserialization:
    @pytest.mark.anyio
    async def test_failure_is_captured(self, httpx_mock: HTTPXMock, base_url: str):
        httpx_mock.add_response(
            url=f"{base_url}/users/1", content=INVALID_USER, headers=JSON_HEADERS
        )

        async with RestClient(base_url) as client:
            response = await client.execute_async(RestRequest("users/1"), User)

        assert response.response_status == ResponseStatus.ERROR
        assert isinstance(response.error_exception, pydantic.ValidationError)
        assert response.content == '{"id":"x"}'
        assert response.data is None

    @pytest.mark.anyio
    async def test_failure_ignored(self, httpx_mock: HTTPXMock, base_url: str):
        httpx_mock.add_response(
            url=f"{base_url}/users/1", content=INVALID_USER, headers=JSON_HEADERS
        )
        options = RestClientOptions(base_url=base_url, fail_on_deserialization_error=False)

        async with RestClient(options) as client:
            response = await client.execute_async(RestRequest("users/1"), User)

        assert response.response_status == ResponseStatus.COMPLETED
        assert response.data is None

    @pytest.mark.anyio
    async def test_failure_raises_deserialization_error(
        self, httpx_mock: HTTPXMock, base_url: str
    ):
        httpx_mock.add_response(
            url=f"{base_url}/users/1", content=INVALID_USER, headers=JSON_HEADERS
        )
        options = RestClientOptions(
            base_url=base_url, throw_on_deserialization_error=True
        )

        async with RestClient(options) as client:
            with pytest.raises(DeserializationError) as exc_info:
                await client.execute_async(RestRequest("users/1"), User)

        assert exc_info.value.response.content == '{"id":"x"}'

    @pytest.mark.anyio
    async def test_failure_raises_original_error(
        self, httpx_mock: HTTPXMock, base_url: str
    ):
        httpx_mock.add_response(
            url=f"{base_url}/users/1", content=INVALID_USER, headers=JSON_HEADERS
        )
        options = RestClientOptions(base_url=base_url, throw_on_any_error=True)

        async with RestClient(options) as client:
            with pytest.raises(pydantic.ValidationError):
                await client.execute_async(RestRequest("users/1"), User)

    @pytest.mark.anyio
    async def test_xml_response_with_json_request(
        self, httpx_mock: HTTPXMock, base_url: str
    ):
        httpx_mock.add_response(
            url=f"{base_url}/orders/1",
            text="<Order><OrderId>1</OrderId><Status>open</Status></Order>",
            headers={"Content-Type": "application/xml; charset=utf-8"},
        )

        async with RestClient(
            base_url, configure_serialization=lambda c: c.use_xml()
        ) as client:
            request = RestRequest("orders/1", request_format=DataFormat.JSON)
            response = await client.execute_async(request, Order)

        assert response.data == Order(1, "open")

    @pytest.mark.anyio
    async def test_deserialize_again(self, httpx_mock: HTTPXMock, base_url: str):
        httpx_mock.add_response(url=f"{base_url}/users/1", json=USER_JSON)

        async with RestClient(base_url) as client:
            response = await client.execute_async(RestRequest("users/1"))
            typed = await client.deserialize_async(response, User)

        assert typed.data.first_name == "Ada"

    @pytest.mark.anyio
    async def test_bytes_response_type(self, httpx_mock: HTTPXMock, base_url: str):
        httpx_mock.add_response(url=f"{base_url}/raw", content=b"\x00\x01")

        async with RestClient(base_url) as client:
            response = await client.execute_async(RestRequest("raw"), bytes)

        assert response.data == b"\x00\x01"


class TestInterceptors:
    @pytest.mark.anyio
    async def test_hook_order(self, base_url: str):
        calls: list[str] = []
        transport = RecordingTransport(
            content=b'{"id": 1, "firstName": "Ada"}',
            headers={"Content-Type": "application/json"},
        )
        options = RestClientOptions(
            base_url=base_url, interceptors=[RecordingInterceptor("client", calls)]
        )
        client = RestClient(options, transport=transport)
        request = RestRequest(
            "users/1", interceptors=[RecordingInterceptor("request", calls)]
        )

        response = await client.execute_async(request, User)

        assert response.data == User(id=1, first_name="Ada")
        assert calls == [
            "client.before_request",
            "request.before_request",
            "client.before_http_request",
            "request.before_http_request",
            "client.after_http_request",
            "request.after_http_request",
            "client.before_deserialization",
            "request.before_deserialization",
            "client.after_deserialization",
            "request.after_deserialization",
        ]

    @pytest.mark.anyio
    async def test_interceptor_can_change_message(self, base_url: str):
        class Auth(Interceptor):
            async def before_http_request(self, request):
                request.headers["Authorization"] = "Bearer secret"

        transport = RecordingTransport()
        client = RestClient(base_url, transport=transport)

        await client.execute_async(RestRequest("users", interceptors=[Auth()]))

        assert transport.requests[0].headers["Authorization"] == "Bearer secret"

    @pytest.mark.anyio
    async def test_interceptor_error_is_captured(self, base_url: str):
        class Deny(Interceptor):
            async def before_request(self, request):
                raise PermissionError("denied")

        transport = RecordingTransport()
        client = RestClient(base_url, transport=transport)

        response = await client.execute_async(RestRequest("users", interceptors=[Deny()]))

        assert response.response_status == ResponseStatus.ERROR
        assert response.error_message == "denied"
        assert transport.requests == []

    @pytest.mark.anyio
    async def test_deserialization_interceptor_error_is_captured(self, base_url: str):
        class Reject(Interceptor):
            async def after_deserialization(self, response):
                raise ValueError("rejected")

        transport = RecordingTransport(content=b"{}", headers={"Content-Type": "application/json"})
        client = RestClient(base_url, transport=transport)

        response = await client.execute_async(
            RestRequest("users", interceptors=[Reject()]), dict
        )

        assert response.response_status == ResponseStatus.ERROR
        assert response.error_message == "rejected"


class TestVerbs:
    @pytest.mark.anyio
    async def test_execute_verb_sets_method(self, httpx_mock: HTTPXMock, base_url: str):
        httpx_mock.add_response(method="HEAD", url=f"{base_url}/users")
        httpx_mock.add_response(method="OPTIONS", url=f"{base_url}/users")
        httpx_mock.add_response(method="PATCH", url=f"{base_url}/users")

        async with RestClient(base_url) as client:
            head = await client.execute_head_async("users")
            options = await client.execute_options_async(RestRequest("users"))
            patch = await client.execute_patch_async("users")

        assert head.request.method == Method.HEAD
        assert options.request.method == Method.OPTIONS
        assert patch.request.method == Method.PATCH

    @pytest.mark.anyio
    async def test_typed_get_raises(self, httpx_mock: HTTPXMock, base_url: str):
        httpx_mock.add_response(url=f"{base_url}/users/9", status_code=404)

        async with RestClient(base_url) as client:
            with pytest.raises(HttpRequestError) as exc_info:
                await client.get_async("users/9", User)

        assert exc_info.value.status_code == 404

    @pytest.mark.anyio
    async def test_untyped_get_returns_response(
        self, httpx_mock: HTTPXMock, base_url: str
    ):
        httpx_mock.add_response(url=f"{base_url}/users/9", status_code=404)

        async with RestClient(base_url) as client:
            response = await client.get_async(RestRequest("users/9"))

        assert response.status_code == 404
        assert not response.is_successful

    @pytest.mark.anyio
    async def test_get_with_parameters(self, httpx_mock: HTTPXMock, base_url: str):
        httpx_mock.add_response(
            url=f"{base_url}/customers/7/orders?status=open",
            json=[{"orderId": 1, "status": "open"}],
        )

        async with RestClient(base_url) as client:
            orders = await client.get_async(
                "customers/{id}/orders",
                list[dict],
                parameters={"id": 7, "status": "open"},
            )

        assert orders == [{"orderId": 1, "status": "open"}]

    @pytest.mark.anyio
    async def test_get_with_parameters_matches_placeholder_case(self, base_url: str):
        transport = RecordingTransport(content=b"{}", headers=JSON_HEADERS)
        client = RestClient(base_url, transport=transport)

        await client.get_async("customers/{ID}", dict, parameters={"id": 7})

        assert transport.requests[0].url == f"{base_url}/customers/7"

    @pytest.mark.anyio
    async def test_post_json(self, httpx_mock: HTTPXMock, base_url: str):
        httpx_mock.add_response(method="POST", url=f"{base_url}/users", status_code=201)
        httpx_mock.add_response(method="PUT", url=f"{base_url}/users/1", json=USER_JSON)

        async with RestClient(base_url) as client:
            status_code = await client.post_json_async("users", {"firstName": "Ada"})
            user = await client.put_json_async("users/1", {"firstName": "Ada"}, User)

        assert status_code == 201
        assert user.id == 1
        post, put = httpx_mock.get_requests()
        assert post.content == b'{"firstName":"Ada"}'
        assert post.headers["Content-Type"] == "application/json"
        assert put.method == "PUT"

    @pytest.mark.anyio
    async def test_typed_delete(self, httpx_mock: HTTPXMock, base_url: str):
        httpx_mock.add_response(method="DELETE", url=f"{base_url}/users/1", json=USER_JSON)

        async with RestClient(base_url) as client:
            user = await client.delete_async("users/1", User)

        assert user.first_name == "Ada"


class TestSyncApi:
    def test_get(self, httpx_mock: HTTPXMock, client: RestClient, base_url: str):
        httpx_mock.add_response(url=f"{base_url}/users/1", json=USER_JSON)

        user = client.get(RestRequest("users/1"), User)

        assert user == User(id=1, first_name="Ada", email="ada@example.com")

    def test_execute_post(self, httpx_mock: HTTPXMock, client: RestClient, base_url: str):
        httpx_mock.add_response(method="POST", url=f"{base_url}/users", json=USER_JSON)

        response = client.execute_post(
            RestRequest("users").add_json_body({"firstName": "Ada"}), User
        )

        assert response.is_successful
        assert response.data.id == 1

    def test_timeout(self, base_url: str):
        client = RestClient(base_url, transport=SlowTransport(delay=5))

        response = client.execute(RestRequest("slow", timeout=0.05))

        assert response.response_status == ResponseStatus.TIMED_OUT

    @pytest.mark.anyio
    async def test_blocking_call_inside_event_loop(
        self, httpx_mock: HTTPXMock, base_url: str
    ):
        httpx_mock.add_response(url=f"{base_url}/ping", text="pong")
        client = RestClient(base_url)

        response = client.execute(RestRequest("ping"))

        assert response.content == "pong"
        client.close()

    def test_blocking_call_from_interceptor(self, base_url: str):
        transport = RecordingTransport(content=b"ok")
        inner: list[RestResponse] = []

        class NestedCall(Interceptor):
            async def before_request(self, request: RestRequest) -> None:
                if request.resource == "outer":
                    inner.append(client.execute(RestRequest("inner")))

        client = RestClient(
            RestClientOptions(base_url=base_url, interceptors=[NestedCall()]),
            transport=transport,
        )
        outer: list[RestResponse] = []
        worker = threading.Thread(
            target=lambda: outer.append(client.execute(RestRequest("outer")))
        )
        worker.start()
        worker.join(timeout=5)

        assert not worker.is_alive()
        assert outer[0].is_successful
        assert inner[0].is_successful
        assert [r.url for r in transport.requests] == [
            f"{base_url}/inner",
            f"{base_url}/outer",
        ]

    def test_close_keeps_caller_transport_open(self, base_url: str):
        transport = RecordingTransport()

        with RestClient(base_url, transport=transport):
            pass

        assert not transport.closed
