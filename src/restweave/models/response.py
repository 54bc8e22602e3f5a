import asyncio
import dataclasses
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, Optional, TypeVar

import httpx

from .content_type import ContentType
from .enums import ResponseStatus
from .errors import HttpRequestError, RequestAbortedError, RequestTimeoutError

if TYPE_CHECKING:
    from .request import RestRequest

T = TypeVar("T")


@dataclass
class RestResponse(Generic[T]):
    """Result of executing a `RestRequest`.

    Transport and deserialization failures are captured in `response_status`,
    `error_message` and `error_exception` instead of being raised; the raw
    content stays available even when typed deserialization fails.
    """

    request: Optional["RestRequest"] = None
    status_code: int = 0
    status_description: str = ""
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    raw_bytes: Optional[bytes] = None
    content: Optional[str] = None
    content_type: Optional[str] = None
    content_encoding: Optional[str] = None
    content_length: Optional[int] = None
    response_uri: Optional[str] = None
    server: Optional[str] = None
    response_status: ResponseStatus = ResponseStatus.NONE
    error_message: Optional[str] = None
    error_exception: Optional[BaseException] = None
    root_element: Optional[str] = None
    data: Optional[T] = None

    @property
    def is_success_status_code(self) -> bool:
        return 200 <= self.status_code <= 299

    @property
    def is_successful(self) -> bool:
        return (
            self.is_success_status_code
            and self.response_status == ResponseStatus.COMPLETED
        )

    def with_data(self, data: Any) -> "RestResponse[Any]":
        return dataclasses.replace(self, data=data)

    def with_error(
        self,
        exception: BaseException,
        status: ResponseStatus = ResponseStatus.ERROR,
    ) -> "RestResponse[T]":
        return dataclasses.replace(
            self,
            response_status=status,
            error_message=str(exception),
            error_exception=exception,
        )

    def get_exception(self) -> Optional[BaseException]:
        """The exception describing why this response is not successful.

        Returns:
            Optional[BaseException]: None when the response is successful.
        """
        if self.response_status == ResponseStatus.TIMED_OUT:
            exception: BaseException = RequestTimeoutError()
            exception.__cause__ = self.error_exception
            return exception
        if self.response_status == ResponseStatus.ABORTED:
            exception = RequestAbortedError()
            exception.__cause__ = self.error_exception
            return exception
        if self.error_exception is not None:
            return self.error_exception
        if self.response_status == ResponseStatus.COMPLETED and not self.is_success_status_code:
            return HttpRequestError.for_status(self.status_code, self)
        return None

    def throw_if_error(self) -> "RestResponse[T]":
        exception = self.get_exception()
        if exception is not None:
            raise exception
        return self

    @classmethod
    def from_error(
        cls, request: Optional["RestRequest"], exception: BaseException
    ) -> "RestResponse[Any]":
        if isinstance(exception, (TimeoutError, httpx.TimeoutException)):
            status = ResponseStatus.TIMED_OUT
        elif isinstance(exception, asyncio.CancelledError):
            status = ResponseStatus.ABORTED
        else:
            status = ResponseStatus.ERROR
        return cls(request=request).with_error(exception, status)

    @classmethod
    def from_content(
        cls,
        request: Optional["RestRequest"],
        *,
        status_code: int,
        headers: httpx.Headers,
        raw_bytes: bytes,
        reason_phrase: str = "",
        url: Optional[str] = None,
        default_encoding: str = "utf-8",
    ) -> "RestResponse[Any]":
        content_type_header = headers.get("Content-Type")
        encoding = ContentType.charset(content_type_header) or default_encoding
        try:
            content = raw_bytes.decode(encoding, errors="replace")
        except LookupError:
            content = raw_bytes.decode(default_encoding, errors="replace")

        return cls(
            request=request,
            status_code=status_code,
            status_description=reason_phrase,
            headers=headers,
            raw_bytes=raw_bytes,
            content=content,
            content_type=ContentType.media_type(content_type_header),
            content_encoding=headers.get("Content-Encoding"),
            content_length=_content_length(headers, raw_bytes),
            response_uri=url,
            server=headers.get("Server"),
            response_status=ResponseStatus.COMPLETED,
            root_element=request.root_element if request is not None else None,
        )


def _content_length(headers: httpx.Headers, raw_bytes: bytes) -> int:
    """Declared body length, or the received length when the header is unusable."""
    try:
        return int(headers["Content-Length"])
    except (KeyError, ValueError):
        return len(raw_bytes)
