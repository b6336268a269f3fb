"""
Pipes - per-parameter value transformers and validators.

Every bound parameter value passes through pipes in a fixed order:
global pipes, then method-scoped pipes (controller-level before
method-level), then the pipes declared on the parameter itself. Each pipe
receives the current value plus ``ArgumentMetadata`` and returns the
replacement value, or an awaitable of it. A pipe raising aborts parameter
resolution for the whole request.

Built-in pipes:
- ParseIntPipe / ParseFloatPipe / ParseBoolPipe
- DefaultValuePipe
- ValidationPipe (dataclass bodies)
"""

from __future__ import annotations

import dataclasses
import inspect
import logging
import types
import typing
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from .components import Component
from .faults import BadRequestFault, ValidationFault


logger = logging.getLogger("heron.pipes")

_UNION_TYPE = getattr(types, "UnionType", None)


class ParamKind(str, Enum):
    """Where a bound parameter value comes from."""

    PATH = "path"
    QUERY = "query"
    BODY = "body"
    HEADERS = "headers"
    REQUEST = "request"
    RESPONSE = "response"
    CUSTOM = "custom"


@dataclass(frozen=True)
class ArgumentMetadata:
    """What a pipe knows about the value it transforms."""

    type: ParamKind
    metatype: Optional[Any] = None
    data: Optional[str] = None


@runtime_checkable
class PipeTransform(Protocol):
    def transform(self, value: Any, metadata: ArgumentMetadata) -> Any:
        ...


class PipeExecutor:
    """Threads a value through an ordered pipe chain."""

    async def run(
        self,
        value: Any,
        pipes: Sequence[Component],
        metadata: ArgumentMetadata,
    ) -> Any:
        for component in pipes:
            pipe = await component.get()
            try:
                value = pipe.transform(value, metadata)
                if inspect.isawaitable(value):
                    value = await value
            except Exception as exc:
                logger.info(
                    "Pipe %s rejected %s parameter %r: %s",
                    component.name, metadata.type.value, metadata.data, exc,
                )
                raise
        return value


# ============================================================================
# Built-in pipes
# ============================================================================

def _label(metadata: ArgumentMetadata) -> str:
    return metadata.data or "unknown"


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


class _ParsePipe:
    """Shared error handling for parsing pipes."""

    def __init__(
        self,
        *,
        optional: bool = False,
        exception_factory: Optional[Callable[[str], BaseException]] = None,
    ):
        self.optional = optional
        self.exception_factory = exception_factory

    def fail(self, message: str):
        if self.exception_factory is not None:
            raise self.exception_factory(message)
        raise BadRequestFault(message)


class ParseIntPipe(_ParsePipe):
    """
    Parse a value as an integer with optional bounds.

    Example:
        @GET("/:id")
        def get_user(self, id: Annotated[int, Param("id", ParseIntPipe)]):
            ...
    """

    def __init__(
        self,
        *,
        optional: bool = False,
        min: Optional[int] = None,
        max: Optional[int] = None,
        exception_factory: Optional[Callable[[str], BaseException]] = None,
    ):
        super().__init__(optional=optional, exception_factory=exception_factory)
        self.min = min
        self.max = max

    def transform(self, value: Any, metadata: ArgumentMetadata) -> Optional[int]:
        if self.optional and _is_empty(value):
            return None

        try:
            parsed = int(str(value).strip(), 10)
        except (TypeError, ValueError):
            self.fail(f'Parameter "{_label(metadata)}" must be an integer')

        if self.min is not None and parsed < self.min:
            self.fail(f'Parameter "{_label(metadata)}" must not be less than {self.min}')
        if self.max is not None and parsed > self.max:
            self.fail(f'Parameter "{_label(metadata)}" must not be greater than {self.max}')
        return parsed


class ParseFloatPipe(_ParsePipe):
    def transform(self, value: Any, metadata: ArgumentMetadata) -> Optional[float]:
        if self.optional and _is_empty(value):
            return None
        try:
            return float(str(value).strip())
        except (TypeError, ValueError):
            self.fail(f'Parameter "{_label(metadata)}" must be a number')


class ParseBoolPipe(_ParsePipe):
    TRUE_VALUES = frozenset(("true", "1", "yes", "on"))
    FALSE_VALUES = frozenset(("false", "0", "no", "off"))

    def transform(self, value: Any, metadata: ArgumentMetadata) -> Optional[bool]:
        if isinstance(value, bool):
            return value
        if self.optional and _is_empty(value):
            return None
        text = str(value).strip().lower()
        if text in self.TRUE_VALUES:
            return True
        if text in self.FALSE_VALUES:
            return False
        self.fail(f'Parameter "{_label(metadata)}" must be a boolean')


class DefaultValuePipe:
    """Replace a missing (None or empty) value with a default."""

    def __init__(self, default: Any):
        self.default = default

    def transform(self, value: Any, metadata: ArgumentMetadata) -> Any:
        return self.default if _is_empty(value) else value


class ValidationPipe:
    """
    Build a dataclass from a body mapping, collecting per-field errors.

    Only ``body`` parameters whose declared type is a dataclass are
    validated; every other value passes through unchanged.

    Raises:
        ValidationFault: with ``errors`` mapping a field path to messages
    """

    def __init__(
        self,
        *,
        whitelist: bool = True,
        forbid_non_whitelisted: bool = True,
        exception_factory: Optional[Callable[[Dict[str, List[str]]], BaseException]] = None,
    ):
        self.whitelist = whitelist
        self.forbid_non_whitelisted = forbid_non_whitelisted
        self.exception_factory = exception_factory

    def transform(self, value: Any, metadata: ArgumentMetadata) -> Any:
        metatype = metadata.metatype
        if metadata.type is not ParamKind.BODY or not dataclasses.is_dataclass(metatype):
            return value

        try:
            return self.build(metatype, value)
        except ValidationFault as fault:
            if self.exception_factory is not None:
                raise self.exception_factory(fault.errors) from fault
            raise

    def build(self, cls: type, data: Any, path: str = "") -> Any:
        if not isinstance(data, Mapping):
            raise ValidationFault({path or "__all__": ["Expected a dictionary of items."]})

        hints = typing.get_type_hints(cls)
        fields = {f.name: f for f in dataclasses.fields(cls) if f.init}
        errors: Dict[str, List[str]] = {}
        values: Dict[str, Any] = {}

        if self.forbid_non_whitelisted:
            for key in data:
                if key not in fields:
                    errors.setdefault(_join(path, key), []).append(
                        f"Property '{key}' should not exist."
                    )

        for name, field in fields.items():
            key = _join(path, name)
            if name not in data:
                if field.default is dataclasses.MISSING and field.default_factory is dataclasses.MISSING:
                    errors.setdefault(key, []).append("This field is required.")
                continue

            raw = data[name]
            try:
                values[name] = self._coerce(hints.get(name, Any), raw, key)
            except ValidationFault as fault:
                for sub_key, messages in fault.errors.items():
                    errors.setdefault(sub_key, []).extend(messages)

        if not self.whitelist:
            extra = {k: v for k, v in data.items() if k not in fields}
        else:
            extra = {}

        if errors:
            raise ValidationFault(errors)

        try:
            instance = cls(**values)
        except (TypeError, ValueError) as exc:
            raise ValidationFault({path or "__all__": [str(exc)]}) from exc

        for key, extra_value in extra.items():
            setattr(instance, key, extra_value)
        return instance

    def _coerce(self, annotation: Any, raw: Any, key: str) -> Any:
        origin = typing.get_origin(annotation)
        args = typing.get_args(annotation)

        if origin is typing.Union or (_UNION_TYPE is not None and origin is _UNION_TYPE):
            if raw is None:
                if type(None) in args:
                    return None
                raise ValidationFault({key: ["This field may not be null."]})
            candidates = [a for a in args if a is not type(None)]
            if len(candidates) == 1:
                return self._coerce(candidates[0], raw, key)
            return raw

        if raw is None:
            if annotation is Any:
                return None
            raise ValidationFault({key: ["This field may not be null."]})

        if dataclasses.is_dataclass(annotation) and isinstance(annotation, type):
            return self.build(annotation, raw, key)

        if annotation is bool:
            if not isinstance(raw, bool):
                raise ValidationFault({key: ["Must be a valid boolean."]})
        elif annotation is int:
            if isinstance(raw, bool) or not isinstance(raw, int):
                raise ValidationFault({key: ["A valid integer is required."]})
        elif annotation is float:
            if isinstance(raw, bool) or not isinstance(raw, (int, float)):
                raise ValidationFault({key: ["A valid number is required."]})
            return float(raw)
        elif annotation is str:
            if not isinstance(raw, str):
                raise ValidationFault({key: ["Not a valid string."]})
        elif annotation is list or origin is list:
            if not isinstance(raw, list):
                raise ValidationFault({key: ["Expected a list of items."]})
        elif annotation is dict or origin is dict:
            if not isinstance(raw, Mapping):
                raise ValidationFault({key: ["Expected a dictionary of items."]})
        return raw


def _join(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name
