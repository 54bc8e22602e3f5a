import dataclasses
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from pydantic import BaseModel

from .._utils._url_builder import ensure_valid_resource
from .content_type import ContentType
from .enums import DataFormat, Method, ParameterType
from .errors import UnsupportedBodyError
from .parameters import (
    BodyParameter,
    CookieParameter,
    CsvParameter,
    GetOrPostParameter,
    HeaderParameter,
    JsonParameter,
    Parameter,
    QueryParameter,
    RequestParameters,
    UrlSegmentParameter,
    XmlParameter,
)

if TYPE_CHECKING:
    from .._interceptors import Interceptor

_PARAMETER_CLASSES: dict[ParameterType, type[Parameter]] = {
    ParameterType.GET_OR_POST: GetOrPostParameter,
    ParameterType.QUERY_STRING: QueryParameter,
    ParameterType.URL_SEGMENT: UrlSegmentParameter,
    ParameterType.HTTP_HEADER: HeaderParameter,
    ParameterType.COOKIE: CookieParameter,
}


class RestRequest:
    """Declarative description of one HTTP call.

    A request is built up front with the fluent `add_*` methods and handed to
    a `RestClient` for a single execution. Instances are not meant to be
    shared between concurrent executions.

    Args:
        resource (str): Resource template, relative to the client base URL or
            absolute. May contain `{name}` placeholders resolved from URL
            segment parameters.
        method (Method): HTTP method. Defaults to GET.
        request_format (DataFormat): Format used for bodies added with
            `add_body` without a content type and as the fallback when the
            response content type is unknown.
        timeout (Optional[float]): Timeout in seconds, overrides the client
            timeout.

    Examples:
        ```python
        request = (
            RestRequest("users/{id}")
            .add_url_segment("id", 42)
            .add_query_parameter("expand", "roles")
        )
        ```
    """

    def __init__(
        self,
        resource: str = "",
        method: Union[Method, str] = Method.GET,
        *,
        request_format: DataFormat = DataFormat.JSON,
        timeout: Optional[float] = None,
        root_element: Optional[str] = None,
        interceptors: Optional[list["Interceptor"]] = None,
    ) -> None:
        self.resource = ensure_valid_resource(resource or "")
        self.method = Method(method.upper() if isinstance(method, str) else method)
        self.request_format = request_format
        self.timeout = timeout
        self.root_element = root_element
        self.interceptors: list["Interceptor"] = list(interceptors or [])
        self.parameters = RequestParameters()

    def __repr__(self) -> str:
        return f"RestRequest({self.method.value} {self.resource!r})"

    @property
    def has_body(self) -> bool:
        return bool(self.parameters.get_parameters(ParameterType.REQUEST_BODY))

    @property
    def body(self) -> Optional[BodyParameter]:
        bodies = self.parameters.get_parameters_of(BodyParameter)
        return bodies[0] if bodies else None

    def add_parameter(
        self,
        name_or_parameter: Union[str, Parameter],
        value: Any = None,
        type: ParameterType = ParameterType.GET_OR_POST,
        encode: bool = True,
    ) -> "RestRequest":
        if isinstance(name_or_parameter, Parameter):
            self.parameters.add_parameter(name_or_parameter)
            return self

        if type == ParameterType.REQUEST_BODY:
            return self._add_named_body(name_or_parameter, value)

        parameter_class = _PARAMETER_CLASSES[type]
        self.parameters.add_parameter(
            parameter_class(name=name_or_parameter, value=value, encode=encode)
        )
        return self

    def add_or_update_parameter(
        self,
        name: str,
        value: Any,
        type: ParameterType = ParameterType.GET_OR_POST,
        encode: bool = True,
    ) -> "RestRequest":
        parameter_class = _PARAMETER_CLASSES[type]
        self.parameters.add_or_update_parameter(
            parameter_class(name=name, value=value, encode=encode)
        )
        return self

    def add_query_parameter(
        self, name: str, value: Any, encode: bool = True
    ) -> "RestRequest":
        self.parameters.add_parameter(
            QueryParameter(name=name, value=value, encode=encode)
        )
        return self

    def add_url_segment(
        self, name: str, value: Any, encode: bool = True
    ) -> "RestRequest":
        self.parameters.add_parameter(
            UrlSegmentParameter(name=name, value=value, encode=encode)
        )
        return self

    def add_header(self, name: str, value: Any) -> "RestRequest":
        if not name:
            raise ValueError("Header name cannot be empty")
        self.parameters.add_parameter(HeaderParameter(name=name, value=str(value)))
        return self

    def add_headers(self, headers: Mapping[str, Any]) -> "RestRequest":
        for name, value in headers.items():
            self.add_header(name, value)
        return self

    def add_cookie(
        self, name: str, value: Any, path: str = "", domain: str = ""
    ) -> "RestRequest":
        self.parameters.add_parameter(
            CookieParameter(name=name, value=str(value), path=path, domain=domain)
        )
        return self

    def add_object(self, obj: Any, *include: str) -> "RestRequest":
        """Add the fields of an object as GET-or-POST parameters.

        Sequence values are joined with commas; `None` values are skipped.

        Args:
            obj: A pydantic model, dataclass instance, mapping or plain object.
            *include: Optional field names to restrict the added parameters.
        """
        for name, value in _object_fields(obj).items():
            if include and name not in include:
                continue
            if value is None:
                continue
            if isinstance(value, (list, tuple, set)):
                value = ",".join(str(item) for item in value)
            self.add_parameter(name, value)
        return self

    def add_body(self, obj: Any, content_type: Optional[str] = None) -> "RestRequest":
        """Add a request body, picking the serialization from the context.

        Without a content type the request format decides: JSON and XML bodies
        are serialized, binary bodies are sent as they are and anything else
        is sent as plain text. With a content type, strings and bytes are sent
        as they are and other objects are serialized when the content type
        names XML or JSON.

        Raises:
            UnsupportedBodyError: If an object body comes with a content type
                that is neither XML nor JSON.
        """
        if content_type is None:
            if self.request_format == DataFormat.JSON:
                return self.add_json_body(obj)
            if self.request_format == DataFormat.XML:
                return self.add_xml_body(obj)
            if self.request_format == DataFormat.CSV:
                return self.add_csv_body(obj)
            if self.request_format == DataFormat.BINARY:
                return self.add_parameter(
                    BodyParameter(
                        value=obj,
                        content_type=ContentType.BINARY,
                        data_format=DataFormat.BINARY,
                    )
                )
            return self.add_parameter(
                BodyParameter(value=str(obj), content_type=ContentType.PLAIN)
            )

        if isinstance(obj, str):
            return self.add_string_body(obj, content_type)
        if isinstance(obj, (bytes, bytearray)):
            return self.add_parameter(
                BodyParameter(
                    value=bytes(obj),
                    content_type=content_type,
                    data_format=DataFormat.BINARY,
                )
            )
        if "xml" in content_type:
            return self.add_xml_body(obj, content_type)
        if "json" in content_type:
            return self.add_json_body(obj, content_type)

        raise UnsupportedBodyError(content_type=content_type)

    def add_string_body(
        self, body: str, content_type_or_format: Union[str, DataFormat]
    ) -> "RestRequest":
        if isinstance(content_type_or_format, DataFormat):
            self.request_format = content_type_or_format
            content_type = ContentType.from_data_format(content_type_or_format)
            data_format = content_type_or_format
        else:
            if not content_type_or_format:
                raise ValueError("Content type cannot be empty")
            content_type = content_type_or_format
            data_format = DataFormat.NONE

        return self.add_parameter(
            BodyParameter(value=body, content_type=content_type, data_format=data_format)
        )

    def add_json_body(
        self,
        obj: Any,
        content_type: Optional[str] = None,
        force_serialize: bool = False,
    ) -> "RestRequest":
        """Add a body serialized as JSON.

        A string is treated as an already serialized JSON document unless
        `force_serialize` is set, in which case it is encoded as a JSON string.
        """
        self.request_format = DataFormat.JSON

        if isinstance(obj, str) and not force_serialize:
            return self.add_string_body(obj, DataFormat.JSON)

        return self.add_parameter(
            JsonParameter(value=obj, content_type=content_type or ContentType.JSON)
        )

    def add_xml_body(
        self,
        obj: Any,
        content_type: Optional[str] = None,
        xml_namespace: str = "",
    ) -> "RestRequest":
        self.request_format = DataFormat.XML

        if isinstance(obj, str):
            return self.add_string_body(obj, DataFormat.XML)

        return self.add_parameter(
            XmlParameter(
                value=obj,
                content_type=content_type or ContentType.XML,
                xml_namespace=xml_namespace or None,
            )
        )

    def add_csv_body(
        self, obj: Any, content_type: Optional[str] = None
    ) -> "RestRequest":
        self.request_format = DataFormat.CSV

        if isinstance(obj, str):
            return self.add_string_body(obj, DataFormat.CSV)

        return self.add_parameter(
            CsvParameter(value=obj, content_type=content_type or ContentType.CSV)
        )

    def _add_named_body(self, name: str, value: Any) -> "RestRequest":
        # a content type given as the parameter name selects the serialization
        if name and "/" in name:
            return self.add_body(value, name)
        return self.add_parameter(
            BodyParameter(name=name, value=value, content_type=ContentType.PLAIN)
        )


def _object_fields(obj: Any) -> dict[str, Any]:
    if isinstance(obj, BaseModel):
        return obj.model_dump(by_alias=True)
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    if isinstance(obj, Mapping):
        return dict(obj)
    return {k: v for k, v in vars(obj).items() if not k.startswith("_")}
