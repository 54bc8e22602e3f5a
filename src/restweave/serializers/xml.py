import dataclasses
from collections.abc import Iterator, Set
from typing import Any, Mapping, Optional

import pydantic_core
import xmltodict
from pydantic import BaseModel

from ..models import BodyParameter, ContentType, DataFormat, RestResponse, XmlParameter
from ._base import RestSerializer, SerializedBody, is_untyped, type_adapter
from ._mapping import find_element, map_to_type

NAMESPACE_ATTRIBUTE = "@xmlns"


class XmlRestSerializer(RestSerializer):
    """XML serializer built on xmltodict.

    Objects are converted to plain data with pydantic and written under a root
    element named after their type (or `root_element`). Responses are parsed
    into dictionaries and matched to the target fields by name variants, so
    `<FirstName>` fills a `first_name` field.

    Args:
        namespace (Optional[str]): Default XML namespace of written documents.
        root_element (Optional[str]): Name of the root element for written
            documents.
        pretty (bool): Indent written documents. Defaults to False.
    """

    data_format = DataFormat.XML
    content_type = ContentType.XML
    accepted_content_types = ContentType.XML_ACCEPT

    def __init__(
        self,
        namespace: Optional[str] = None,
        root_element: Optional[str] = None,
        pretty: bool = False,
    ) -> None:
        self.namespace = namespace
        self.root_element = root_element
        self.pretty = pretty

    def supports_content_type(self, content_type: str) -> bool:
        media_type = (ContentType.media_type(content_type) or "").lower()
        return media_type.endswith("xml") or super().supports_content_type(
            content_type
        )

    def serialize(self, obj: Any) -> SerializedBody:
        if obj is None:
            return None
        if isinstance(obj, (Set, Iterator)):
            obj = list(obj)

        data = pydantic_core.to_jsonable_python(obj, by_alias=True)
        if isinstance(data, list):
            item_name = type(obj[0]).__name__ if obj else "Item"
            root = self.root_element or f"ArrayOf{item_name}"
            value: Any = {item_name: data}
        elif (
            self.root_element is None
            and isinstance(obj, Mapping)
            and len(data) == 1
        ):
            # {"Root": {...}} already names its root element
            root, value = next(iter(data.items()))
        else:
            root = self.root_element or _type_name(obj)
            value = data

        if self.namespace:
            if isinstance(value, Mapping):
                value = {NAMESPACE_ATTRIBUTE: self.namespace, **value}
            else:
                value = {NAMESPACE_ATTRIBUTE: self.namespace, "#text": value}

        return xmltodict.unparse({root: value}, full_document=True, pretty=self.pretty)

    def serialize_parameter(self, parameter: BodyParameter) -> SerializedBody:
        if not isinstance(parameter, XmlParameter):
            raise ValueError("Supplied parameter is not an XML parameter")
        if parameter.value is None:
            raise ValueError("Body parameter value cannot be None")

        saved_namespace = self.namespace
        if parameter.xml_namespace:
            self.namespace = parameter.xml_namespace
        try:
            return self.serialize(parameter.value)
        finally:
            self.namespace = saved_namespace

    def deserialize(self, response: RestResponse[Any], response_type: Any) -> Any:
        if not response.content:
            return None

        document = xmltodict.parse(response.content, attr_prefix="")
        _, data = next(iter(document.items()))

        if response.root_element:
            element = find_element(document, response.root_element)
            if element is not None:
                data = element

        if is_untyped(response_type):
            return data
        return type_adapter(response_type).validate_python(
            map_to_type(data, response_type)
        )


def _type_name(obj: Any) -> str:
    if isinstance(obj, BaseModel) or dataclasses.is_dataclass(obj):
        return type(obj).__name__
    return "Root"
