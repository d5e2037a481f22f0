"""JSON payload codec with a fixed UTC rendering for dates.

Values are converted through pydantic, so anything pydantic can validate
(models, dataclasses, ``TypedDict`` and the builtin containers) can be encoded
and decoded. Date/time values never use pydantic's ISO rendering; they are
written and read with :data:`DATE_FORMAT` in UTC, at one-second resolution.
This holds for fields declared as plain ``datetime`` as well as for
:data:`UtcDateTime` fields.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import threading
import types
from datetime import datetime, timezone
from typing import (
    Annotated,
    Any,
    Dict,
    Iterable,
    Mapping,
    Optional,
    Protocol,
    Tuple,
    Union,
    get_args,
    get_origin,
    get_type_hints,
    runtime_checkable,
)

from pydantic import (
    BaseModel,
    Field,
    PlainSerializer,
    PlainValidator,
    TypeAdapter,
    ValidationError,
    create_model,
)
from pydantic_core import PydanticSerializationError, to_jsonable_python
from typing_extensions import is_typeddict

from .errors import CodecSyntaxError

LOGGER = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


@runtime_checkable
class Converter(Protocol):
    """Conversion hook between a Python type and its JSON string form."""

    def serialize(self, value: Any) -> str:  # pragma: no cover - protocol definition
        ...

    def deserialize(self, text: str) -> Any:  # pragma: no cover
        ...


class UtcDateConverter:
    """Render and parse datetimes as ``yyyy-MM-ddTHH:mm:ssZ`` in UTC.

    ``strftime``/``strptime`` keep no shared state, so a single instance can
    be used from any number of threads.
    """

    def __init__(self, pattern: str = DATE_FORMAT) -> None:
        self.pattern = pattern

    @staticmethod
    def normalise(value: datetime) -> datetime:
        """Return ``value`` as an aware UTC datetime without microseconds.

        Naive datetimes name no instant and are rejected.
        """

        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError(f"Naive datetime {value.isoformat()} has no time zone")
        return value.astimezone(timezone.utc).replace(microsecond=0)

    def serialize(self, value: datetime) -> str:
        return self.normalise(value).strftime(self.pattern)

    def deserialize(self, text: str) -> datetime:
        try:
            parsed = datetime.strptime(text, self.pattern)
        except (TypeError, ValueError) as exc:
            raise CodecSyntaxError(f"Unparseable date: {text!r}", text=str(text)) from exc
        return parsed.replace(tzinfo=timezone.utc)


def _annotate(target: type, converter: Converter) -> Any:
    """Return ``target`` annotated so pydantic routes it through ``converter``."""

    def validate(value: Any) -> Any:
        if isinstance(value, target):
            if isinstance(converter, UtcDateConverter):
                return converter.normalise(value)
            return value
        if not isinstance(value, str):
            raise CodecSyntaxError(f"Expected a string, got {value!r}", text=repr(value))
        return converter.deserialize(value)

    return Annotated[
        target,
        PlainValidator(validate),
        PlainSerializer(converter.serialize, return_type=str),
    ]


DEFAULT_DATE_CONVERTER = UtcDateConverter()

UtcDateTime = _annotate(datetime, DEFAULT_DATE_CONVERTER)


class PayloadCodec:
    """Serialise values to pretty-printed JSON and back."""

    def __init__(
        self,
        converters: Optional[Mapping[type, Converter]] = None,
        indent: int = 2,
    ) -> None:
        self._converters: Dict[type, Converter] = (
            dict(converters) if converters is not None else {datetime: DEFAULT_DATE_CONVERTER}
        )
        self._annotated = {
            target: _annotate(target, converter) for target, converter in self._converters.items()
        }
        self._serializers: Dict[Any, TypeAdapter] = {}
        self._validators: Dict[Any, Tuple[TypeAdapter, Optional[TypeAdapter]]] = {}
        self._mirrors: Dict[type, Any] = {}
        self._lock = threading.Lock()
        self.indent = indent

    def _resolve(self, target: Any, mirror: bool = False) -> Any:
        """Substitute converter types inside ``target``.

        Generic descriptors (``List[datetime]``, ``Optional[datetime]`` ...) are
        rebuilt around the converter type. With ``mirror`` set, models,
        dataclasses and ``TypedDict`` classes with a converter-typed field are
        replaced by a validation-only model whose fields use the converter.
        Returns ``target`` itself when nothing needs substituting.
        """

        try:
            if target in self._annotated:
                return self._annotated[target]
        except TypeError:
            return target
        if mirror and get_origin(target) is None and isinstance(target, type) and _has_fields(target):
            if target not in self._mirrors:
                # placeholder while building, for self-referencing shapes
                self._mirrors[target] = target
                self._mirrors[target] = self._mirror(target)
            return self._mirrors[target]

        origin = get_origin(target)
        args = get_args(target)
        if origin is None or not args:
            return target
        if origin is Annotated:
            inner, metadata = args[0], args[1:]
            if any(isinstance(item, PlainValidator) for item in metadata):
                return target
            resolved_inner = self._resolve(inner, mirror)
            if resolved_inner is inner:
                return target
            return Annotated[(resolved_inner, *metadata)]

        resolved = tuple(self._resolve(arg, mirror) for arg in args)
        if all(new is old for new, old in zip(resolved, args)):
            return target
        if origin is Union or origin is types.UnionType:
            return Union[resolved]
        return origin[resolved]

    def _mirror(self, target: type) -> Any:
        if issubclass(target, BaseModel):
            fields = {}
            for name, info in target.model_fields.items():
                annotation = info.annotation
                if info.metadata:
                    annotation = Annotated[(annotation, *info.metadata)]
                resolved = self._resolve(annotation, mirror=True)
                if resolved is not annotation:
                    fields[name] = (
                        resolved,
                        Field(
                            ... if info.is_required() else None,
                            alias=info.alias,
                            validation_alias=info.validation_alias,
                        ),
                    )
            if not fields:
                return target
            return create_model(target.__name__, __base__=target, **fields)

        if is_typeddict(target):
            hints = get_type_hints(target)
            required = target.__required_keys__
            items: Iterable[Tuple[str, bool]] = ((name, name in required) for name in hints)
        else:
            hints = get_type_hints(target, include_extras=True)
            items = (
                (
                    field.name,
                    field.default is dataclasses.MISSING
                    and field.default_factory is dataclasses.MISSING,
                )
                for field in dataclasses.fields(target)
                if field.init
            )

        fields = {}
        changed = False
        for name, is_required in items:
            annotation = hints.get(name, Any)
            resolved = self._resolve(annotation, mirror=True)
            changed = changed or resolved is not annotation
            fields[name] = (resolved, ... if is_required else None)
        if not changed:
            return target
        return create_model(target.__name__, **fields)

    def _serializer(self, target: Any) -> TypeAdapter:
        adapter = self._serializers.get(target)
        if adapter is None:
            adapter = TypeAdapter(self._resolve(target))
            self._serializers[target] = adapter
        return adapter

    def _validator(self, target: Any) -> Tuple[TypeAdapter, Optional[TypeAdapter]]:
        """Return the adapter producing the value and, if needed, a date checker."""

        entry = self._validators.get(target)
        if entry is None:
            with self._lock:
                resolved = self._resolve(target)
                mirrored = self._resolve(target, mirror=True)
                checker = None if mirrored == resolved else TypeAdapter(mirrored)
                entry = (TypeAdapter(resolved), checker)
                self._validators[target] = entry
        return entry

    def _convert(self, value: Any) -> Any:
        for target, converter in self._converters.items():
            if isinstance(value, target):
                return converter.serialize(value)
        if isinstance(value, dict):
            return {key: self._convert(item) for key, item in value.items()}
        if isinstance(value, (list, tuple, set, frozenset)):
            return [self._convert(item) for item in value]
        return value

    def encode(self, value: Any) -> str:
        """Return ``value`` as an indented JSON document.

        Raises:
            ValueError: If ``value`` holds something the converters reject,
                such as a naive datetime.
        """

        try:
            plain = self._serializer(type(value)).dump_python(value, mode="python", by_alias=True)
            return json.dumps(
                self._convert(plain),
                indent=self.indent,
                ensure_ascii=False,
                default=to_jsonable_python,
            )
        except PydanticSerializationError as exc:
            raise ValueError(f"Cannot encode {type(value).__name__}: {exc}") from exc

    def decode(self, text: str | bytes, target: Any) -> Any:
        """Parse ``text`` into a value of shape ``target``.

        ``target`` may be a class or a generic descriptor such as
        ``Dict[str, RepositoryModel]`` or ``List[UserModel]``.

        Raises:
            CodecSyntaxError: If the JSON is malformed, a date cannot be parsed
                or the document does not match ``target``.
        """

        adapter, checker = self._validator(target)
        try:
            if checker is not None:
                checker.validate_json(text)
            return adapter.validate_json(text)
        except ValidationError as exc:
            raise _syntax_error(exc, text) from exc


def _has_fields(target: type) -> bool:
    return (
        issubclass(target, BaseModel)
        or dataclasses.is_dataclass(target)
        or is_typeddict(target)
    )


def _syntax_error(exc: ValidationError, text: str | bytes) -> CodecSyntaxError:
    document = text.decode("utf-8", errors="replace") if isinstance(text, bytes) else text
    errors = exc.errors()
    first = errors[0] if errors else {}
    if first.get("type") == "json_invalid":
        LOGGER.debug("Rejected malformed JSON document")
        return CodecSyntaxError(f"Malformed JSON: {first.get('msg')}", text=document)
    location = ".".join(str(part) for part in first.get("loc", ()))
    offending = first.get("input")
    message = f"Cannot decode {location or 'document'}: {first.get('msg')}"
    return CodecSyntaxError(
        message,
        text=offending if isinstance(offending, str) else document,
    )


_default_codec = PayloadCodec()


def to_json(value: Any) -> str:
    """Encode ``value`` with the default codec."""

    return _default_codec.encode(value)


def from_json(text: str | bytes, target: Any) -> Any:
    """Decode ``text`` into ``target`` with the default codec."""

    return _default_codec.decode(text, target)


__all__ = [
    "Converter",
    "DATE_FORMAT",
    "DEFAULT_DATE_CONVERTER",
    "PayloadCodec",
    "UtcDateConverter",
    "UtcDateTime",
    "from_json",
    "to_json",
]
