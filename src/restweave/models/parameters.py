import threading
from typing import Any, Iterable, Iterator, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

from .content_type import ContentType
from .enums import DataFormat, ParameterType

P = TypeVar("P", bound="Parameter")

MULTI_VALUE_TYPES = (ParameterType.GET_OR_POST, ParameterType.QUERY_STRING)
REPLACED_BY_NAME_TYPES = (ParameterType.URL_SEGMENT, ParameterType.HTTP_HEADER)


class Parameter(BaseModel):
    """A named request value with a kind tag."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: Optional[str] = None
    value: Any = None
    type: ParameterType = ParameterType.GET_OR_POST
    encode: bool = True
    content_type: Optional[str] = None

    def matches_name(self, name: Optional[str]) -> bool:
        return (
            self.name is not None
            and name is not None
            and self.name.casefold() == name.casefold()
        )

    def __str__(self) -> str:
        return f"{self.name}={self.value}"


class GetOrPostParameter(Parameter):
    type: ParameterType = ParameterType.GET_OR_POST


class QueryParameter(Parameter):
    type: ParameterType = ParameterType.QUERY_STRING


class UrlSegmentParameter(Parameter):
    type: ParameterType = ParameterType.URL_SEGMENT


class HeaderParameter(Parameter):
    type: ParameterType = ParameterType.HTTP_HEADER
    encode: bool = False


class CookieParameter(Parameter):
    type: ParameterType = ParameterType.COOKIE
    encode: bool = False
    path: str = ""
    domain: str = ""


class BodyParameter(Parameter):
    name: Optional[str] = ""
    type: ParameterType = ParameterType.REQUEST_BODY
    encode: bool = False
    content_type: Optional[str] = ContentType.PLAIN
    data_format: DataFormat = DataFormat.NONE


class JsonParameter(BodyParameter):
    content_type: Optional[str] = ContentType.JSON
    data_format: DataFormat = DataFormat.JSON


class XmlParameter(BodyParameter):
    content_type: Optional[str] = ContentType.XML
    data_format: DataFormat = DataFormat.XML
    xml_namespace: Optional[str] = None


class CsvParameter(BodyParameter):
    content_type: Optional[str] = ContentType.CSV
    data_format: DataFormat = DataFormat.CSV


class ParametersCollection:
    """Ordered, non-unique collection of parameters.

    Not thread-safe: build the collection before the request is executed.
    """

    def __init__(self, parameters: Optional[Iterable[Parameter]] = None) -> None:
        self._parameters: list[Parameter] = list(parameters or [])

    def exists(self, parameter: Parameter) -> bool:
        return any(
            p.matches_name(parameter.name) and p.type == parameter.type
            for p in self._parameters
        )

    def try_find(self, name: str) -> Optional[Parameter]:
        return next((p for p in self._parameters if p.matches_name(name)), None)

    def get_parameters(self, parameter_type: ParameterType) -> list[Parameter]:
        return [p for p in self._parameters if p.type == parameter_type]

    def get_parameters_of(self, parameter_class: type[P]) -> list[P]:
        return [p for p in self._parameters if isinstance(p, parameter_class)]

    def __iter__(self) -> Iterator[Parameter]:
        return iter(list(self._parameters))

    def __len__(self) -> int:
        return len(self._parameters)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._parameters!r})"


class RequestParameters(ParametersCollection):
    """Parameters of a single request.

    URL segments and headers are unique by name (case-insensitive): adding one
    again replaces the previous value in place. A request has a single body
    slot, so a second body replaces the first. Other kinds may repeat.
    """

    def add_parameter(self, parameter: Parameter) -> "RequestParameters":
        if parameter.type == ParameterType.REQUEST_BODY:
            self._replace_where(
                lambda p: p.type == ParameterType.REQUEST_BODY, parameter
            )
        elif parameter.type in REPLACED_BY_NAME_TYPES:
            self._replace_where(
                lambda p: p.type == parameter.type and p.matches_name(parameter.name),
                parameter,
            )
        else:
            self._parameters.append(parameter)
        return self

    def add_parameters(self, parameters: Iterable[Parameter]) -> "RequestParameters":
        for parameter in parameters:
            self.add_parameter(parameter)
        return self

    def add_or_update_parameter(self, parameter: Parameter) -> "RequestParameters":
        self._replace_where(
            lambda p: p.type == parameter.type and p.matches_name(parameter.name),
            parameter,
        )
        return self

    def remove_parameter(self, parameter: Parameter) -> "RequestParameters":
        self._parameters = [p for p in self._parameters if p is not parameter]
        return self

    def _replace_where(self, predicate: Any, parameter: Parameter) -> None:
        for index, existing in enumerate(self._parameters):
            if predicate(existing):
                self._parameters[index] = parameter
                self._parameters = self._parameters[: index + 1] + [
                    p for p in self._parameters[index + 1 :] if not predicate(p)
                ]
                return
        self._parameters.append(parameter)


class DefaultParameters(ParametersCollection):
    """Parameters added to every request issued by a client."""

    def __init__(self, allow_multiple_with_same_name: bool = False) -> None:
        super().__init__()
        self._allow_multiple_with_same_name = allow_multiple_with_same_name
        self._lock = threading.Lock()

    def add_parameter(self, parameter: Parameter) -> "DefaultParameters":
        with self._lock:
            if parameter.type == ParameterType.REQUEST_BODY:
                raise ValueError("Cannot set request body using default parameters")

            if (
                not self._allow_multiple_with_same_name
                and parameter.type not in MULTI_VALUE_TYPES
                and any(p.matches_name(parameter.name) for p in self._parameters)
            ):
                raise ValueError(
                    f"A default parameter named '{parameter.name}' has already been added"
                )

            self._parameters.append(parameter)
        return self

    def replace_parameter(self, parameter: Parameter) -> "DefaultParameters":
        with self._lock:
            self._parameters = [
                p
                for p in self._parameters
                if not (p.type == parameter.type and p.matches_name(parameter.name))
            ]
        return self.add_parameter(parameter)

    def remove_parameter(
        self, name: str, parameter_type: ParameterType
    ) -> "DefaultParameters":
        with self._lock:
            self._parameters = [
                p
                for p in self._parameters
                if not (p.type == parameter_type and p.matches_name(name))
            ]
        return self
