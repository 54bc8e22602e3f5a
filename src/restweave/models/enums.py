from enum import Enum


class Method(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    @property
    def allows_body(self) -> bool:
        return self in (Method.POST, Method.PUT, Method.PATCH)


class DataFormat(str, Enum):
    """Logical content format, independent of the concrete content type."""

    JSON = "json"
    XML = "xml"
    CSV = "csv"
    BINARY = "binary"
    PLAIN = "plain"
    NONE = "none"


class ParameterType(str, Enum):
    """Where a request parameter ends up when the request is built.

    GET_OR_POST goes to the query string for bodiless requests and into a
    form-encoded body for POST/PUT/PATCH requests without an explicit body.
    QUERY_STRING always goes to the query string.
    """

    GET_OR_POST = "get_or_post"
    QUERY_STRING = "query_string"
    URL_SEGMENT = "url_segment"
    HTTP_HEADER = "http_header"
    COOKIE = "cookie"
    REQUEST_BODY = "request_body"


class ResponseStatus(str, Enum):
    NONE = "none"
    COMPLETED = "completed"
    ERROR = "error"
    TIMED_OUT = "timed_out"
    ABORTED = "aborted"
