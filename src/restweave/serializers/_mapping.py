"""Map loosely named documents (XML elements, CSV columns) onto typed fields.

JSON documents are validated directly by pydantic. XML and CSV sources use
whatever naming the server picked, so each target field is looked up through
its name variants (see `get_name_variants`) before validation.
"""

import dataclasses
import types
from typing import Any, Mapping, Optional, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel

from .._utils._strings import (
    get_name_variants,
    remove_underscores_and_dashes,
    to_pascal_case,
)

TEXT_KEY = "#text"


def is_record_type(tp: Any) -> bool:
    return isinstance(tp, type) and (
        issubclass(tp, BaseModel) or dataclasses.is_dataclass(tp)
    )


def _unwrap_optional(tp: Any) -> Any:
    if get_origin(tp) in (Union, types.UnionType):
        args = [arg for arg in get_args(tp) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


def _is_sequence_type(tp: Any) -> bool:
    return get_origin(tp) in (list, tuple, set, frozenset)


def _python_name_candidates(name: str) -> list[str]:
    # snake_case attributes commonly arrive as PascalCase or dashed names
    return [name, to_pascal_case(name), name.replace("_", "-")]


def record_fields(tp: type) -> list[tuple[str, list[str], Any]]:
    """Return (validation key, candidate names, annotation) for each field."""
    if issubclass(tp, BaseModel):
        fields = []
        for name, info in tp.model_fields.items():
            candidates = [info.alias] if info.alias else []
            candidates += _python_name_candidates(name)
            fields.append((info.alias or name, candidates, info.annotation))
        return fields

    hints = get_type_hints(tp)
    return [
        (f.name, _python_name_candidates(f.name), hints.get(f.name, Any))
        for f in dataclasses.fields(tp)
        if f.init
    ]


def find_value(data: Mapping[str, Any], candidates: list[str]) -> tuple[bool, Any]:
    for candidate in candidates:
        for variant in get_name_variants(candidate):
            if variant in data:
                return True, data[variant]

    normalized = {
        remove_underscores_and_dashes(str(key)).casefold(): key for key in data
    }
    for candidate in candidates:
        key = normalized.get(remove_underscores_and_dashes(candidate).casefold())
        if key is not None:
            return True, data[key]
    return False, None


def find_element(data: Any, name: str) -> Optional[Any]:
    """Depth-first search for the first element matching `name`."""
    if isinstance(data, Mapping):
        found, value = find_value(data, [name])
        if found:
            return value
        for value in data.values():
            result = find_element(value, name)
            if result is not None:
                return result
    elif isinstance(data, list):
        for item in data:
            result = find_element(item, name)
            if result is not None:
                return result
    return None


def map_to_type(data: Any, tp: Any) -> Any:
    """Rename the keys of `data` so that pydantic can validate it as `tp`."""
    tp = _unwrap_optional(tp)

    if _is_sequence_type(tp):
        args = get_args(tp)
        item_type = args[0] if args else Any
        if isinstance(data, Mapping):
            elements = {
                k: v for k, v in data.items() if not str(k).startswith("xmlns")
            }
            if len(elements) == 1:
                # <items><item/><item/></items>
                data = next(iter(elements.values()))
        if data is None:
            return []
        if not isinstance(data, list):
            data = [data]
        return [map_to_type(item, item_type) for item in data]

    if is_record_type(tp) and isinstance(data, Mapping):
        mapped = {}
        for key, candidates, annotation in record_fields(tp):
            found, value = find_value(data, candidates)
            if found:
                mapped[key] = map_to_type(value, annotation)
        return mapped

    if isinstance(data, Mapping) and TEXT_KEY in data:
        return data[TEXT_KEY]

    return data
