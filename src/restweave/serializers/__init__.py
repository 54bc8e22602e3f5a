from ._base import RestSerializer
from ._registry import RestSerializers, SerializerConfig, SerializerRecord
from .csv import CsvRestSerializer
from .json import JsonRestSerializer
from .text import TextRestSerializer
from .xml import XmlRestSerializer

__all__ = [
    "RestSerializer",
    "RestSerializers",
    "SerializerConfig",
    "SerializerRecord",
    "CsvRestSerializer",
    "JsonRestSerializer",
    "TextRestSerializer",
    "XmlRestSerializer",
]
