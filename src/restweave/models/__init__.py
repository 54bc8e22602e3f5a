from .enums import DataFormat, Method, ParameterType, ResponseStatus
from .content_type import ContentType
from .errors import (
    DeserializationError,
    HttpRequestError,
    InvalidUrlError,
    RequestAbortedError,
    RequestTimeoutError,
    RestClientError,
    SerializerNotFoundError,
    UnsupportedBodyError,
)
from .parameters import (
    BodyParameter,
    CookieParameter,
    CsvParameter,
    DefaultParameters,
    GetOrPostParameter,
    HeaderParameter,
    JsonParameter,
    Parameter,
    ParametersCollection,
    QueryParameter,
    RequestParameters,
    UrlSegmentParameter,
    XmlParameter,
)
from .response import RestResponse
from .request import RestRequest

__all__ = [
    "DataFormat",
    "Method",
    "ParameterType",
    "ResponseStatus",
    "ContentType",
    "DeserializationError",
    "HttpRequestError",
    "InvalidUrlError",
    "RequestAbortedError",
    "RequestTimeoutError",
    "RestClientError",
    "SerializerNotFoundError",
    "UnsupportedBodyError",
    "BodyParameter",
    "CookieParameter",
    "CsvParameter",
    "DefaultParameters",
    "GetOrPostParameter",
    "HeaderParameter",
    "JsonParameter",
    "Parameter",
    "ParametersCollection",
    "QueryParameter",
    "RequestParameters",
    "UrlSegmentParameter",
    "XmlParameter",
    "RestResponse",
    "RestRequest",
]
