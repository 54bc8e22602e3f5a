from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .response import RestResponse


class RestClientError(Exception):
    """Base class for all errors raised by restweave."""


class InvalidUrlError(RestClientError, ValueError):
    def __init__(self, url: Any, reason: str = "not a valid absolute http(s) URL"):
        self.url = url
        self.message = f"Invalid URL '{url}': {reason}"
        super().__init__(self.message)


class UnsupportedBodyError(RestClientError, ValueError):
    def __init__(
        self,
        message="Non-string body found with unsupported content type",
        content_type: Optional[str] = None,
    ):
        self.message = message
        self.content_type = content_type
        super().__init__(self.message)


class SerializerNotFoundError(RestClientError, LookupError):
    """Raised when no serializer is registered for a data format.

    XML and CSV serializers are not registered by default, configure them
    with `SerializerConfig.use_xml()` or `SerializerConfig.use_csv()`.
    """

    def __init__(self, data_format: Any):
        self.data_format = data_format
        self.message = f"Serializer for {data_format} not found"
        super().__init__(self.message)


class HttpRequestError(RestClientError):
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional["RestResponse[Any]"] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(self.message)

    @staticmethod
    def for_status(
        status_code: int, response: Optional["RestResponse[Any]"] = None
    ) -> "HttpRequestError":
        return HttpRequestError(
            f"Request failed with status code {status_code}",
            status_code=status_code,
            response=response,
        )


class RequestAbortedError(HttpRequestError):
    def __init__(self, message="Request aborted"):
        super().__init__(message)


class RequestTimeoutError(RestClientError, TimeoutError):
    def __init__(self, message="Request timed out"):
        self.message = message
        super().__init__(self.message)


class DeserializationError(RestClientError):
    """Raised when a response body cannot be converted to the requested type.

    The response keeps its raw content, so callers can still inspect what the
    server sent.
    """

    def __init__(self, response: "RestResponse[Any]", inner: BaseException):
        self.response = response
        self.inner = inner
        self.message = f"Error while deserializing the response: {inner}"
        super().__init__(self.message)
