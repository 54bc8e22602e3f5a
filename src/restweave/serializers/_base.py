from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Optional, Union

from pydantic import TypeAdapter

from ..models import BodyParameter, ContentType, DataFormat, RestResponse

SerializedBody = Union[str, bytes, None]


class RestSerializer(ABC):
    """Converts request bodies to text and response content to typed values.

    A serializer instance may keep per-call state (see the XML namespace
    handling), so the registry hands out a fresh instance for each use.
    """

    data_format: DataFormat = DataFormat.NONE
    content_type: str = ContentType.PLAIN
    accepted_content_types: tuple[str, ...] = ()

    def supports_content_type(self, content_type: str) -> bool:
        media_type = (ContentType.media_type(content_type) or "").lower()
        return media_type in (accepted.lower() for accepted in self.accepted_content_types)

    @abstractmethod
    def serialize(self, obj: Any) -> SerializedBody:
        """Serialize an object for a request body. `None` stays `None`."""

    def serialize_parameter(self, parameter: BodyParameter) -> SerializedBody:
        if parameter.value is None:
            raise ValueError("Body parameter value cannot be None")
        return self.serialize(parameter.value)

    @abstractmethod
    def deserialize(self, response: RestResponse[Any], response_type: Any) -> Any:
        """Convert the response content to `response_type`.

        Returns None when the response has no content.
        """


def type_adapter(response_type: Any) -> TypeAdapter[Any]:
    try:
        return _cached_type_adapter(response_type)
    except TypeError:
        # unhashable annotations
        return TypeAdapter(response_type)


@lru_cache(maxsize=256)
def _cached_type_adapter(response_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(response_type)


def is_untyped(response_type: Any) -> bool:
    return response_type is None or response_type is Any or response_type is object


def select_root(data: Any, root_element: Optional[str]) -> Any:
    """Descend into the named top-level member of a decoded document."""
    if not root_element or not isinstance(data, dict):
        return data
    if root_element in data:
        return data[root_element]
    folded = root_element.casefold()
    for key, value in data.items():
        if str(key).casefold() == folded:
            return value
    return data
