from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ._transport import TransportRequest, TransportResponse
    from .models import RestRequest, RestResponse


class Interceptor:
    """Hooks into the request pipeline.

    Subclass and override the stages you need; every hook is a no-op by
    default. Interceptors configured on the client run before those added to
    the request. An exception raised by a hook ends the pipeline and is
    reported on the response.

    Examples:
        ```python
        class BearerAuth(Interceptor):
            def __init__(self, token: str):
                self.token = token

            async def before_http_request(self, request):
                request.headers["Authorization"] = f"Bearer {self.token}"
        ```
    """

    async def before_request(self, request: "RestRequest") -> None:
        """Called before the request is built."""

    async def before_http_request(self, request: "TransportRequest") -> None:
        """Called with the built message, right before it is sent."""

    async def after_http_request(self, response: "TransportResponse") -> None:
        """Called after the response headers arrive, before the body is read."""

    async def before_deserialization(self, response: "RestResponse[Any]") -> None:
        pass

    async def after_deserialization(self, response: "RestResponse[Any]") -> None:
        pass
