"""
Typed values on top of a byte store.
"""

import json
from typing import Any, Generic, Optional, Protocol, Type, TypeVar

from pydantic import TypeAdapter, ValidationError

from xtreamtv.cache.base import DecodingFailedError, EncodingFailedError
from xtreamtv.cache.disk import DiskCache

T = TypeVar("T")


class Serializer(Protocol[T]):
    """Strategy converting values to and from bytes."""

    def dumps(self, value: T) -> bytes:
        ...

    def loads(self, data: bytes) -> T:
        ...


class JSONSerializer:
    """Plain JSON values (dicts, lists, strings, numbers)."""

    def dumps(self, value: Any) -> bytes:
        return json.dumps(value, ensure_ascii=False, sort_keys=True).encode("utf-8")

    def loads(self, data: bytes) -> Any:
        return json.loads(data)


class PydanticSerializer(Generic[T]):
    """
    JSON through a pydantic ``TypeAdapter``.

    Works for models and for containers of them, e.g.
    ``PydanticSerializer(list[VodStream])`` or
    ``PydanticSerializer(dict[str, str])``.
    """

    def __init__(self, type_: Type[T]):
        self.type_ = type_
        self._adapter = TypeAdapter(type_)

    def dumps(self, value: T) -> bytes:
        return self._adapter.dump_json(value)

    def loads(self, data: bytes) -> T:
        return self._adapter.validate_json(data)


class TypedCache(Generic[T]):
    """Serialize values of one type into a ``DiskCache``."""

    def __init__(self, store: DiskCache, serializer: Serializer[T]):
        self.store = store
        self.serializer = serializer

    def save_value(self, value: T, key: str) -> None:
        """
        Serialize and store ``value``.

        Raises:
            EncodingFailedError: If the value cannot be serialized.
            WriteFailedError: If the store cannot write it.
        """
        try:
            data = self.serializer.dumps(value)
        except (TypeError, ValueError) as e:
            raise EncodingFailedError(
                f"Could not encode value for {key!r}", key=key, original_error=e
            ) from e
        self.store.save(key, data)

    def load_value(self, key: str) -> Optional[T]:
        """
        Load and deserialize the value stored under ``key``.

        Returns None when the key is absent or expired.

        Raises:
            DecodingFailedError: If stored bytes cannot be deserialized.
            ReadFailedError: If the store cannot read them.
        """
        data = self.store.load(key)
        if data is None:
            return None

        try:
            return self.serializer.loads(data)
        except (ValueError, TypeError, ValidationError) as e:
            raise DecodingFailedError(
                f"Could not decode cached value for {key!r}", key=key, original_error=e
            ) from e
