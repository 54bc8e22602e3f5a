"""restweave: a declarative HTTP client.

Build a `RestRequest` from parameters, execute it with a `RestClient` and get
a `RestResponse` with typed data back.
"""

from .models import (  # noqa: I001 models must load before the client modules
    BodyParameter,
    ContentType,
    CookieParameter,
    CsvParameter,
    DataFormat,
    DeserializationError,
    GetOrPostParameter,
    HeaderParameter,
    HttpRequestError,
    InvalidUrlError,
    JsonParameter,
    Method,
    Parameter,
    ParameterType,
    QueryParameter,
    RequestAbortedError,
    RequestTimeoutError,
    ResponseStatus,
    RestClientError,
    RestRequest,
    RestResponse,
    SerializerNotFoundError,
    UnsupportedBodyError,
    UrlSegmentParameter,
    XmlParameter,
)
from ._client import RestClient
from ._config import RestClientOptions
from ._interceptors import Interceptor
from ._transport import (
    HttpxTransport,
    ResponseStream,
    Transport,
    TransportRequest,
    TransportResponse,
)
from ._utils._user_agent import package_version
from .serializers import (
    CsvRestSerializer,
    JsonRestSerializer,
    RestSerializer,
    SerializerConfig,
    TextRestSerializer,
    XmlRestSerializer,
)

__version__ = package_version()

__all__ = [
    "RestClient",
    "RestClientOptions",
    "RestRequest",
    "RestResponse",
    "Interceptor",
    "Transport",
    "HttpxTransport",
    "TransportRequest",
    "TransportResponse",
    "ResponseStream",
    "SerializerConfig",
    "RestSerializer",
    "JsonRestSerializer",
    "XmlRestSerializer",
    "CsvRestSerializer",
    "TextRestSerializer",
    "Method",
    "DataFormat",
    "ParameterType",
    "ResponseStatus",
    "ContentType",
    "Parameter",
    "GetOrPostParameter",
    "QueryParameter",
    "UrlSegmentParameter",
    "HeaderParameter",
    "CookieParameter",
    "BodyParameter",
    "JsonParameter",
    "XmlParameter",
    "CsvParameter",
    "RestClientError",
    "InvalidUrlError",
    "UnsupportedBodyError",
    "SerializerNotFoundError",
    "HttpRequestError",
    "RequestAbortedError",
    "RequestTimeoutError",
    "DeserializationError",
]
