from typing import Any

from ..models import ContentType, DataFormat, RestResponse
from ._base import RestSerializer, SerializedBody, is_untyped, type_adapter


class TextRestSerializer(RestSerializer):
    """Plain text: bodies are sent as `str(obj)`, responses returned as text."""

    data_format = DataFormat.PLAIN
    content_type = ContentType.PLAIN
    accepted_content_types = ContentType.PLAIN_ACCEPT

    def serialize(self, obj: Any) -> SerializedBody:
        if obj is None:
            return None
        return str(obj)

    def deserialize(self, response: RestResponse[Any], response_type: Any) -> Any:
        if response.content is None:
            return None
        if is_untyped(response_type) or response_type is str:
            return response.content
        # scalars such as int or Decimal
        return type_adapter(response_type).validate_python(response.content.strip())
