from .enums import DataFormat


class ContentType:
    """Content type constants and helpers."""

    JSON = "application/json"
    XML = "application/xml"
    CSV = "text/csv"
    PLAIN = "text/plain"
    BINARY = "application/octet-stream"
    FORM_URL_ENCODED = "application/x-www-form-urlencoded"

    JSON_ACCEPT: tuple[str, ...] = (
        JSON,
        "text/json",
        "text/x-json",
        "text/javascript",
        "*+json",
    )
    XML_ACCEPT: tuple[str, ...] = (XML, "text/xml", "*+xml")
    CSV_ACCEPT: tuple[str, ...] = (CSV, "application/csv")
    PLAIN_ACCEPT: tuple[str, ...] = (PLAIN,)

    _BY_DATA_FORMAT = {
        DataFormat.JSON: JSON,
        DataFormat.XML: XML,
        DataFormat.CSV: CSV,
        DataFormat.BINARY: BINARY,
        DataFormat.PLAIN: PLAIN,
        DataFormat.NONE: PLAIN,
    }

    @classmethod
    def from_data_format(cls, data_format: DataFormat) -> str:
        return cls._BY_DATA_FORMAT[data_format]

    @staticmethod
    def media_type(content_type: str | None) -> str | None:
        """Strip parameters such as charset from a content type header value."""
        if not content_type:
            return None
        media_type = content_type.split(";", 1)[0].strip()
        return media_type or None

    @staticmethod
    def charset(content_type: str | None) -> str | None:
        if not content_type:
            return None
        for part in content_type.split(";")[1:]:
            key, _, value = part.partition("=")
            if key.strip().lower() == "charset" and value:
                return value.strip().strip('"')
        return None
