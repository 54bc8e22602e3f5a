import json
from typing import Any

import pydantic_core

from ..models import ContentType, DataFormat, RestResponse
from ._base import RestSerializer, SerializedBody, is_untyped, select_root, type_adapter


class JsonRestSerializer(RestSerializer):
    """JSON serializer backed by pydantic.

    Pydantic models are dumped with their aliases; anything pydantic can
    serialize (dataclasses, mappings, datetimes, enums) is accepted.

    Args:
        by_alias (bool): Use field aliases when dumping models. Defaults to True.
        exclude_none (bool): Drop fields set to None. Defaults to False.
    """

    data_format = DataFormat.JSON
    content_type = ContentType.JSON
    accepted_content_types = ContentType.JSON_ACCEPT

    def __init__(self, by_alias: bool = True, exclude_none: bool = False) -> None:
        self.by_alias = by_alias
        self.exclude_none = exclude_none

    def supports_content_type(self, content_type: str) -> bool:
        media_type = (ContentType.media_type(content_type) or "").lower()
        return media_type.endswith("json") or super().supports_content_type(
            content_type
        )

    def serialize(self, obj: Any) -> SerializedBody:
        if obj is None:
            return None
        return pydantic_core.to_json(
            obj, by_alias=self.by_alias, exclude_none=self.exclude_none
        ).decode("utf-8")

    def deserialize(self, response: RestResponse[Any], response_type: Any) -> Any:
        if not response.content:
            return None

        if response.root_element:
            data = select_root(json.loads(response.content), response.root_element)
            if is_untyped(response_type):
                return data
            return type_adapter(response_type).validate_python(data)

        if is_untyped(response_type):
            return json.loads(response.content)
        return type_adapter(response_type).validate_json(response.content)
