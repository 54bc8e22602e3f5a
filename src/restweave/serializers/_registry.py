import logging
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Optional

from ..models import (
    BodyParameter,
    CsvParameter,
    DataFormat,
    DeserializationError,
    JsonParameter,
    RestRequest,
    RestResponse,
    SerializerNotFoundError,
    XmlParameter,
)
from ._base import RestSerializer, SerializedBody
from .csv import CsvRestSerializer
from .json import JsonRestSerializer
from .text import TextRestSerializer
from .xml import XmlRestSerializer

if TYPE_CHECKING:
    from .._config import RestClientOptions
    from .._interceptors import Interceptor

logger = logging.getLogger("restweave")

SerializerFactory = Callable[[], RestSerializer]


class SerializerRecord:
    """Registration of one serializer: its format, content types and factory."""

    def __init__(self, factory: SerializerFactory) -> None:
        instance = factory()
        self.data_format = instance.data_format
        self.accepted_content_types = instance.accepted_content_types
        self.supports_content_type = instance.supports_content_type
        self._factory = factory

    def get_serializer(self) -> RestSerializer:
        return self._factory()

    def __repr__(self) -> str:
        return f"SerializerRecord({self.data_format.value})"


class SerializerConfig:
    """Mutable builder for the serializers of a client.

    JSON and plain text are registered by default; XML and CSV are opt-in.
    Registering a serializer for a format that is already registered replaces
    the previous one.

    Examples:
        ```python
        client = RestClient(
            "https://api.example.com",
            configure_serialization=lambda config: config.use_xml(),
        )
        ```
    """

    def __init__(self) -> None:
        self.serializers: dict[DataFormat, SerializerRecord] = {}

    def use_serializer(self, factory: SerializerFactory) -> "SerializerConfig":
        record = SerializerRecord(factory)
        self.serializers[record.data_format] = record
        return self

    def use_only_serializer(self, factory: SerializerFactory) -> "SerializerConfig":
        self.serializers.clear()
        return self.use_serializer(factory)

    def use_default_serializers(self) -> "SerializerConfig":
        return self.use_json().use_text()

    def use_json(self, by_alias: bool = True, exclude_none: bool = False) -> "SerializerConfig":
        return self.use_serializer(
            lambda: JsonRestSerializer(by_alias=by_alias, exclude_none=exclude_none)
        )

    def use_xml(
        self,
        namespace: Optional[str] = None,
        root_element: Optional[str] = None,
        pretty: bool = False,
    ) -> "SerializerConfig":
        return self.use_serializer(
            lambda: XmlRestSerializer(
                namespace=namespace, root_element=root_element, pretty=pretty
            )
        )

    def use_csv(self, delimiter: str = ",") -> "SerializerConfig":
        return self.use_serializer(lambda: CsvRestSerializer(delimiter=delimiter))

    def use_text(self) -> "SerializerConfig":
        return self.use_serializer(TextRestSerializer)


class RestSerializers:
    """Read-only serializer registry used while executing requests."""

    def __init__(self, records: Mapping[DataFormat, SerializerRecord]) -> None:
        self._records = dict(records)

    @property
    def data_formats(self) -> list[DataFormat]:
        return list(self._records)

    @property
    def accept_header(self) -> str:
        accepted: list[str] = []
        for record in self._records.values():
            accepted.extend(
                t for t in record.accepted_content_types if t not in accepted
            )
        return ", ".join(accepted)

    def get_serializer(self, data_format: DataFormat) -> RestSerializer:
        record = self._records.get(data_format)
        if record is None:
            raise SerializerNotFoundError(data_format)
        return record.get_serializer()

    def try_get_serializer(self, data_format: DataFormat) -> Optional[RestSerializer]:
        record = self._records.get(data_format)
        return record.get_serializer() if record is not None else None

    def serialize_body(self, parameter: BodyParameter) -> SerializedBody:
        """Serialize a body parameter according to its class."""
        if isinstance(parameter, JsonParameter):
            return self.get_serializer(DataFormat.JSON).serialize_parameter(parameter)
        if isinstance(parameter, XmlParameter):
            return self.get_serializer(DataFormat.XML).serialize_parameter(parameter)
        if isinstance(parameter, CsvParameter):
            return self.get_serializer(DataFormat.CSV).serialize_parameter(parameter)

        value = parameter.value
        if value is None or isinstance(value, (str, bytes)):
            return value
        if isinstance(value, bytearray):
            return bytes(value)

        serializer = self.try_get_serializer(parameter.data_format)
        if serializer is not None:
            return serializer.serialize(value)
        return str(value)

    def get_content_deserializer(
        self, response: RestResponse[Any], request_format: DataFormat
    ) -> Optional[RestSerializer]:
        if response.content_type:
            for record in self._records.values():
                if record.supports_content_type(response.content_type):
                    return record.get_serializer()

        record = self._records.get(request_format) or self._records.get(
            DataFormat.PLAIN
        )
        return record.get_serializer() if record is not None else None

    def deserialize_content(
        self,
        response: RestResponse[Any],
        response_type: Any,
        request_format: DataFormat = DataFormat.JSON,
    ) -> Any:
        if response_type is bytes:
            return response.raw_bytes
        if not response.content:
            return None

        deserializer = self.get_content_deserializer(response, request_format)
        if deserializer is None:
            return None
        return deserializer.deserialize(response, response_type)

    async def deserialize(
        self,
        request: RestRequest,
        response: RestResponse[Any],
        options: "RestClientOptions",
        response_type: Any,
        interceptors: Iterable["Interceptor"] = (),
    ) -> RestResponse[Any]:
        """Produce the typed response for `response`.

        Failures are captured on the returned response according to the
        client options, or raised when the options ask for it.

        Raises:
            DeserializationError: If `throw_on_deserialization_error` is set
                and the content cannot be converted.
        """
        if response.error_exception is not None:
            return response.with_data(None)

        interceptors = list(interceptors)
        try:
            for interceptor in interceptors:
                await interceptor.before_deserialization(response)

            data = self.deserialize_content(
                response, response_type, request.request_format
            )
            typed_response = response.with_data(data)

            for interceptor in interceptors:
                await interceptor.after_deserialization(typed_response)
            return typed_response
        except Exception as e:
            logger.debug(f"Failed to deserialize response: {e}")
            if options.throw_on_any_error:
                raise

            failed = response
            if (
                options.fail_on_deserialization_error
                or options.throw_on_deserialization_error
            ):
                failed = response.with_error(e)

            if options.throw_on_deserialization_error:
                raise DeserializationError(failed, e) from e
            return failed.with_data(None)
