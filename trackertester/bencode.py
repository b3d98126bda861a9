"""Bencode encoding and decoding.

Strings decode to ``bytes``; dictionary keys decode to ``str``.  Dataclass
fields take part in encoding and decoding when their metadata carries a
``"bencode"`` entry such as ``"name"`` or ``"name,omitempty"``.
"""

from __future__ import annotations

import dataclasses
import re
import types
import typing
from collections import deque
from operator import itemgetter
from typing import Any, Union

__all__ = ["BencodeError", "decode", "decode_into", "encode"]

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_INTEGER = re.compile(rb"[+-]?[0-9]+\Z")
_BYTES_LIKE = (bytes, bytearray, memoryview)
_ANNOTATION_PART = re.compile(r"[A-Za-z_][\w.]*|[\[\],|]")
_ANNOTATION_NAMES: dict[str, Any] = {
    "int": int,
    "str": str,
    "bytes": bytes,
    "object": object,
    "Any": Any,
    "None": type(None),
    "NoneType": type(None),
}


class BencodeError(ValueError):
    """Raised when a value cannot be encoded or data cannot be decoded."""


def _key_bytes(key: Any) -> bytes:
    if isinstance(key, str):
        return key.encode("utf-8", "surrogateescape")
    if isinstance(key, _BYTES_LIKE):
        return bytes(key)
    raise BencodeError("map keys must be strings")


def _text(raw: bytes) -> str:
    return raw.decode("utf-8", "surrogateescape")


def _tag(f: dataclasses.Field) -> tuple[str, bool] | None:
    tag = f.metadata.get("bencode", "")
    if not tag or tag == "-":
        return None
    name, *options = tag.split(",")
    return name, bool(options) and options[0] == "omitempty"


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value == 0
    if isinstance(value, (str, bytes, bytearray, memoryview, list, tuple, dict)):
        return len(value) == 0
    return False


def encode(value: Any) -> bytes:
    """Encode ``value`` as bencode.

    Supports ints, str, bytes, lists, tuples, dicts with string keys and
    dataclass instances.
    """
    out = bytearray()
    _encode(value, out)
    return bytes(out)


def _encode_string(raw: bytes, out: bytearray) -> None:
    out += b"%d:" % len(raw)
    out += raw


def _encode_pairs(pairs: list[tuple[bytes, Any]], out: bytearray) -> None:
    out += b"d"
    for key, item in sorted(pairs, key=itemgetter(0)):
        _encode_string(key, out)
        _encode(item, out)
    out += b"e"


def _encode(value: Any, out: bytearray) -> None:
    if value is None:
        raise BencodeError("cannot encode nil value")
    if isinstance(value, bool):
        raise BencodeError("unsupported type for bencode: bool")
    if isinstance(value, int):
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise BencodeError(f"integer out of range for bencode: {value}")
        out += b"i%de" % value
    elif isinstance(value, str):
        _encode_string(value.encode("utf-8", "surrogateescape"), out)
    elif isinstance(value, _BYTES_LIKE):
        _encode_string(bytes(value), out)
    elif isinstance(value, (list, tuple)):
        out += b"l"
        for item in value:
            _encode(item, out)
        out += b"e"
    elif isinstance(value, dict):
        _encode_pairs([(_key_bytes(k), v) for k, v in value.items()], out)
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        pairs = []
        for f in dataclasses.fields(value):
            tag = _tag(f)
            if tag is None:
                continue
            name, omitempty = tag
            item = getattr(value, f.name)
            if omitempty and _is_empty(item):
                continue
            pairs.append((_key_bytes(name), item))
        _encode_pairs(pairs, out)
    else:
        raise BencodeError(f"unsupported type for bencode: {type(value).__name__}")


def decode(data: bytes | bytearray | memoryview) -> Any:
    """Decode a complete bencoded document."""
    if not isinstance(data, _BYTES_LIKE):
        raise TypeError(f"bencode data must be bytes, not {type(data).__name__}")
    raw = bytes(data)
    if not raw:
        raise BencodeError("empty bencode data")
    try:
        value, pos = _decode_value(raw, 0)
    except RecursionError as exc:
        raise BencodeError("bencode data nested too deeply") from exc
    if pos != len(raw):
        raise BencodeError(
            f"extra data after decoding: {len(raw) - pos} bytes remaining"
        )
    return value


def _decode_value(data: bytes, pos: int) -> tuple[Any, int]:
    if pos >= len(data):
        raise BencodeError("unexpected end of bencode data")
    lead = data[pos : pos + 1]

    if lead == b"i":
        end = data.find(b"e", pos + 1)
        if end < 0:
            raise BencodeError(f"unterminated integer at position {pos}")
        digits = data[pos + 1 : end]
        if not _INTEGER.match(digits):
            raise BencodeError(f"invalid integer at position {pos}: {digits!r}")
        number = int(digits)
        if not _INT64_MIN <= number <= _INT64_MAX:
            raise BencodeError(f"invalid integer at position {pos}: out of range")
        return number, end + 1

    if lead == b"l":
        items: list[Any] = []
        pos += 1
        while pos < len(data) and data[pos : pos + 1] != b"e":
            item, pos = _decode_value(data, pos)
            items.append(item)
        if pos >= len(data):
            raise BencodeError(f"unterminated list at position {pos}")
        return items, pos + 1

    if lead == b"d":
        mapping: dict[str, Any] = {}
        pos += 1
        while pos < len(data) and data[pos : pos + 1] != b"e":
            try:
                key, next_pos = _decode_string(data, pos)
            except BencodeError as exc:
                raise BencodeError(
                    f"invalid dictionary key at position {pos}: {exc}"
                ) from exc
            mapping[_text(key)], pos = _decode_value(data, next_pos)
        if pos >= len(data):
            raise BencodeError(f"unterminated dictionary at position {pos}")
        return mapping, pos + 1

    return _decode_string(data, pos)


def _decode_string(data: bytes, pos: int) -> tuple[bytes, int]:
    colon = data.find(b":", pos)
    if colon < 0:
        raise BencodeError(f"invalid string at position {pos}: no colon found")
    digits = data[pos:colon]
    if not _INTEGER.match(digits) or (length := int(digits)) < 0:
        raise BencodeError(f"invalid string length at position {pos}: {digits!r}")
    start = colon + 1
    end = start + length
    if end > len(data):
        raise BencodeError(f"string length exceeds data at position {pos}")
    return data[start:end], end


def decode_into(data: bytes | bytearray | memoryview, cls: Any) -> Any:
    """Decode ``data`` and convert the result to the type ``cls``.

    ``cls`` may be int, str, bytes, list, dict (optionally parametrised),
    ``Any``/``object`` or a dataclass whose fields carry bencode metadata.
    """
    return _assign(cls, decode(data))


def _kind(value: Any) -> str:
    if isinstance(value, int):
        return "int64"
    if isinstance(value, (str, bytes)):
        return "string"
    if isinstance(value, list):
        return "list"
    if isinstance(value, dict):
        return "dict"
    return type(value).__name__


def _zero(tp: Any) -> Any:
    origin = typing.get_origin(tp) or tp
    if origin is int:
        return 0
    if origin is str:
        return ""
    if origin is bytes:
        return b""
    if origin is list:
        return []
    if origin is dict:
        return {}
    return None


def _field_type(f: dataclasses.Field) -> Any:
    """Resolve a field's annotation, reading string annotations by name."""
    if isinstance(f.type, str):
        parts = deque(_ANNOTATION_PART.findall(f.type))
        return _parse_union(parts) if parts else Any
    return f.type


def _parse_union(parts: deque[str]) -> Any:
    options = [_parse_primary(parts)]
    while parts and parts[0] == "|":
        parts.popleft()
        options.append(_parse_primary(parts))
    if len(options) == 1:
        return options[0]
    return Union[tuple(options)]


def _parse_primary(parts: deque[str]) -> Any:
    if not parts:
        return Any
    name = parts.popleft()
    args: list[Any] = []
    if parts and parts[0] == "[":
        parts.popleft()
        args.append(_parse_union(parts))
        while parts and parts[0] == ",":
            parts.popleft()
            args.append(_parse_union(parts))
        if parts and parts[0] == "]":
            parts.popleft()
    return _build_annotation(name.rsplit(".", 1)[-1], args)


def _build_annotation(name: str, args: list[Any]) -> Any:
    if name == "Optional":
        return Union[args[0], None] if args else Any
    if name == "Union":
        return Union[tuple(args)] if args else Any
    if name in ("list", "List"):
        return list[args[0]] if args else list
    if name in ("dict", "Dict"):
        return dict[args[0], args[1]] if len(args) == 2 else dict
    return _ANNOTATION_NAMES.get(name, Any)


def _assign(tp: Any, value: Any) -> Any:
    if tp is Any or tp is object:
        return value
    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if origin is Union or origin is types.UnionType:
        for option in args:
            if option is type(None):
                continue
            try:
                return _assign(option, value)
            except BencodeError:
                continue
        raise BencodeError(f"cannot assign {_kind(value)} to {tp}")

    if tp is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        raise BencodeError(f"cannot assign {_kind(value)} to int64")

    if tp is str:
        if isinstance(value, bytes):
            return _text(value)
        if isinstance(value, str):
            return value
        raise BencodeError(f"cannot assign {_kind(value)} to string")

    if tp is bytes:
        if isinstance(value, bytes):
            return value
        if isinstance(value, str):
            return value.encode("utf-8", "surrogateescape")
        raise BencodeError(f"cannot assign {_kind(value)} to bytes")

    if tp is list or origin is list:
        if not isinstance(value, list):
            raise BencodeError(f"cannot assign {_kind(value)} to list")
        item_type = args[0] if args else Any
        return [_assign(item_type, item) for item in value]

    if tp is dict or origin is dict:
        if not isinstance(value, dict):
            raise BencodeError(f"cannot assign {_kind(value)} to map")
        key_type, value_type = args if len(args) == 2 else (Any, Any)
        return {
            _assign(key_type, key): _assign(value_type, item)
            for key, item in value.items()
        }

    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        if not isinstance(value, dict):
            raise BencodeError(f"cannot assign {_kind(value)} to struct")
        return _assign_dataclass(tp, value)

    raise BencodeError(f"unsupported target type: {tp!r}")


def _assign_dataclass(cls: type, source: dict[str, Any]) -> Any:
    init_values: dict[str, Any] = {}
    late_values: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        tag = _tag(f)
        hint = _field_type(f)
        if tag is not None and tag[0] in source:
            try:
                converted = _assign(hint, source[tag[0]])
            except BencodeError as exc:
                raise BencodeError(f"field '{tag[0]}': {exc}") from exc
            (init_values if f.init else late_values)[f.name] = converted
        elif (
            f.init
            and f.default is dataclasses.MISSING
            and f.default_factory is dataclasses.MISSING
        ):
            init_values[f.name] = _zero(hint)
    instance = cls(**init_values)
    for name, converted in late_values.items():
        object.__setattr__(instance, name, converted)
    return instance