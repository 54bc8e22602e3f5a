import csv
import io
from typing import Any, Mapping, get_args, get_origin

import pydantic_core

from ..models import ContentType, DataFormat, RestResponse
from ._base import RestSerializer, SerializedBody, is_untyped, type_adapter
from ._mapping import map_to_type


class CsvRestSerializer(RestSerializer):
    """CSV serializer for flat records.

    A single object is written as one data row; a sequence as one row per
    item. The header row lists the union of the record fields in order of
    appearance. Empty cells are read back as None.
    """

    data_format = DataFormat.CSV
    content_type = ContentType.CSV
    accepted_content_types = ContentType.CSV_ACCEPT

    def __init__(self, delimiter: str = ",") -> None:
        self.delimiter = delimiter

    def supports_content_type(self, content_type: str) -> bool:
        media_type = (ContentType.media_type(content_type) or "").lower()
        return media_type.endswith("csv") or super().supports_content_type(
            content_type
        )

    def serialize(self, obj: Any) -> SerializedBody:
        if obj is None:
            return None

        records = obj if isinstance(obj, (list, tuple)) else [obj]
        rows = [pydantic_core.to_jsonable_python(r, by_alias=True) for r in records]
        if not all(isinstance(row, Mapping) for row in rows):
            raise ValueError("CSV bodies must be records or sequences of records")

        fieldnames: list[str] = []
        for row in rows:
            fieldnames.extend(name for name in row if name not in fieldnames)

        output = io.StringIO()
        writer = csv.DictWriter(
            output,
            fieldnames=fieldnames,
            delimiter=self.delimiter,
            lineterminator="\n",
        )
        writer.writeheader()
        writer.writerows(rows)
        return output.getvalue()

    def deserialize(self, response: RestResponse[Any], response_type: Any) -> Any:
        if not response.content:
            return None

        reader = csv.DictReader(
            io.StringIO(response.content), delimiter=self.delimiter
        )
        rows = [
            {key: (value if value != "" else None) for key, value in row.items()}
            for row in reader
        ]

        if is_untyped(response_type):
            return rows
        if get_origin(response_type) in (list, tuple):
            args = get_args(response_type)
            item_type = args[0] if args else Any
            data: Any = [map_to_type(row, item_type) for row in rows]
        else:
            data = map_to_type(rows[0], response_type) if rows else None
        return type_adapter(response_type).validate_python(data)
