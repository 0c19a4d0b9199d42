"""Partial updates of JSON resources through merge, JSON and shorthand patches."""

from __future__ import annotations

import copy
import json
import re
from dataclasses import dataclass, field
from typing import Any

from apitoolkit.casing import join, split

MERGE_PATCH_JSON = "application/merge-patch+json"
MERGE_PATCH_SHORTHAND = "application/merge-patch+shorthand"
JSON_PATCH_JSON = "application/json-patch+json"

_MERGE_TYPES = frozenset({MERGE_PATCH_JSON, "application/json", ""})

# Schema keywords carried over into the optional copy of a schema.
_COPIED_KEYWORDS = frozenset(
    {
        "type", "title", "description", "format", "contentEncoding", "default",
        "examples", "additionalProperties", "enum", "minimum", "exclusiveMinimum",
        "maximum", "exclusiveMaximum", "multipleOf", "minLength", "maxLength",
        "pattern", "patternDescription", "minItems", "maxItems", "uniqueItems",
        "minProperties", "maxProperties", "readOnly", "writeOnly", "deprecated",
        "dependentRequired", "discriminator",
    }
)

_INT_RE = re.compile(r"-?[0-9]+")
_FLOAT_RE = re.compile(r"-?[0-9]+(\.[0-9]+)?([eE][+-]?[0-9]+)?")


class PatchError(Exception):
    """A patch could not be decoded or applied; carries the HTTP status to send."""

    def __init__(self, status: int, message: str, cause: Exception | None = None) -> None:
        text = message if cause is None else f"{message}: {cause}"
        super().__init__(text)
        self.status = status
        self.message = message
        self.cause = cause


def patch_operation_name(operation_id: str) -> str:
    """Guess a resource name from a GET operation ID, e.g. ``get-thing`` -> ``thing``."""
    parts = split(operation_id)
    if len(parts) > 1 and parts[0].lower() in ("get", "fetch"):
        parts = parts[1:]
    return join(parts, "-")


def _merge(target: Any, patch: Any) -> Any:
    if not isinstance(patch, dict):
        return copy.deepcopy(patch)
    result = dict(target) if isinstance(target, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = _merge(result.get(key), value)
    return result


def apply_merge_patch(original: Any, patch: Any) -> Any:
    """Apply an RFC 7386 JSON Merge Patch, returning a new document."""
    return _merge(copy.deepcopy(original), patch)


# --- RFC 6902 JSON Patch -------------------------------------------------


def _pointer(path: Any) -> list[str]:
    if not isinstance(path, str):
        raise ValueError(f"invalid JSON pointer: {path!r}")
    if path == "":
        return []
    if not path.startswith("/"):
        raise ValueError(f"JSON pointer must start with '/': {path!r}")
    return [p.replace("~1", "/").replace("~0", "~") for p in path[1:].split("/")]


def _index(container: list, token: str, allow_end: bool = False) -> int:
    if not token.isdigit() or (len(token) > 1 and token.startswith("0")):
        raise ValueError(f"invalid array index: {token!r}")
    idx = int(token)
    limit = len(container) if allow_end else len(container) - 1
    if idx > limit:
        raise ValueError(f"array index out of range: {idx}")
    return idx


def _child(node: Any, token: str) -> Any:
    if isinstance(node, dict):
        if token not in node:
            raise ValueError(f"missing key: {token!r}")
        return node[token]
    if isinstance(node, list):
        return node[_index(node, token)]
    raise ValueError(f"cannot traverse into {type(node).__name__} with {token!r}")


def _resolve(doc: Any, tokens: list[str]) -> Any:
    node = doc
    for token in tokens:
        node = _child(node, token)
    return node


def _add(doc: Any, tokens: list[str], value: Any) -> Any:
    if not tokens:
        return value
    parent = _resolve(doc, tokens[:-1])
    last = tokens[-1]
    if isinstance(parent, dict):
        parent[last] = value
    elif isinstance(parent, list):
        if last == "-":
            parent.append(value)
        else:
            parent.insert(_index(parent, last, allow_end=True), value)
    else:
        raise ValueError(f"cannot add to {type(parent).__name__}")
    return doc


def _remove(doc: Any, tokens: list[str]) -> tuple[Any, Any]:
    if not tokens:
        raise ValueError("cannot remove the document root")
    parent = _resolve(doc, tokens[:-1])
    last = tokens[-1]
    if isinstance(parent, dict):
        if last not in parent:
            raise ValueError(f"missing key: {last!r}")
        return doc, parent.pop(last)
    if isinstance(parent, list):
        return doc, parent.pop(_index(parent, last))
    raise ValueError(f"cannot remove from {type(parent).__name__}")


def _replace(doc: Any, tokens: list[str], value: Any) -> Any:
    if not tokens:
        return value
    parent = _resolve(doc, tokens[:-1])
    last = tokens[-1]
    if isinstance(parent, dict):
        if last not in parent:
            raise ValueError(f"missing key: {last!r}")
        parent[last] = value
    elif isinstance(parent, list):
        parent[_index(parent, last)] = value
    else:
        raise ValueError(f"cannot replace in {type(parent).__name__}")
    return doc


def _required(op: dict, key: str) -> Any:
    if key not in op:
        raise ValueError(f"operation {op.get('op')!r} is missing {key!r}")
    return op[key]


def _apply_operation(doc: Any, op: Any) -> Any:
    if not isinstance(op, dict):
        raise ValueError("patch operation must be an object")
    name = op.get("op")
    tokens = _pointer(_required(op, "path"))
    if name == "add":
        return _add(doc, tokens, copy.deepcopy(_required(op, "value")))
    if name == "remove":
        return _remove(doc, tokens)[0]
    if name == "replace":
        return _replace(doc, tokens, copy.deepcopy(_required(op, "value")))
    if name == "move":
        source = _pointer(_required(op, "from"))
        if tokens[: len(source)] == source and len(tokens) > len(source):
            raise ValueError("cannot move a value into one of its children")
        doc, value = _remove(doc, source)
        return _add(doc, tokens, value)
    if name == "copy":
        source = _pointer(_required(op, "from"))
        return _add(doc, tokens, copy.deepcopy(_resolve(doc, source)))
    if name == "test":
        expected = _required(op, "value")
        if _resolve(doc, tokens) != expected:
            raise ValueError(f"test failed at {op['path']!r}")
        return doc
    raise ValueError(f"unsupported operation: {name!r}")


def apply_json_patch(original: Any, operations: Any) -> Any:
    """Apply an RFC 6902 JSON Patch, returning a new document."""
    if not isinstance(operations, list):
        raise PatchError(422, "Unable to decode JSON Patch", ValueError("patch must be a list"))
    doc = copy.deepcopy(original)
    try:
        for op in operations:
            doc = _apply_operation(doc, op)
    except ValueError as exc:
        raise PatchError(422, "Unable to apply patch", exc) from exc
    return doc


# --- Shorthand merge patches ---------------------------------------------


@dataclass
class _Object:
    entries: list[tuple[list[tuple[str, Any]], Any]] = field(default_factory=list)


def _coerce(raw: str) -> Any:
    if raw == "null":
        return None
    if raw == "true":
        return True
    if raw == "false":
        return False
    if _INT_RE.fullmatch(raw):
        return int(raw)
    if _FLOAT_RE.fullmatch(raw):
        return float(raw)
    return raw


def _parse_key(raw: str) -> list[tuple[str, Any]]:
    tokens: list[tuple[str, Any]] = []
    name = ""
    i = 0
    while i < len(raw):
        c = raw[i]
        if c == ".":
            if name:
                tokens.append(("key", name.strip()))
                name = ""
            elif not tokens or tokens[-1][0] == "key":
                raise ValueError(f"empty path segment in {raw!r}")
            i += 1
        elif c == "[":
            if name:
                tokens.append(("key", name.strip()))
                name = ""
            elif not tokens:
                raise ValueError(f"path must start with a key: {raw!r}")
            end = raw.find("]", i)
            if end == -1:
                raise ValueError(f"unclosed index in {raw!r}")
            inner = raw[i + 1 : end].strip()
            if inner == "":
                tokens.append(("append", None))
            elif inner.isdigit():
                tokens.append(("index", int(inner)))
            else:
                raise ValueError(f"invalid index {inner!r} in {raw!r}")
            i = end + 1
        else:
            name += c
            i += 1
    if name:
        tokens.append(("key", name.strip()))
    if not tokens or tokens[0][0] != "key":
        raise ValueError(f"invalid key: {raw!r}")
    return tokens


def _materialize(old: Any, value: Any) -> Any:
    if isinstance(value, _Object):
        return _apply_entries(old if isinstance(old, dict) else {}, value.entries)
    return value


def _set(node: Any, tokens: list[tuple[str, Any]], value: Any) -> Any:
    if not tokens:
        return _materialize(node, value)
    (kind, arg), rest = tokens[0], tokens[1:]
    if kind == "key":
        if not isinstance(node, dict):
            node = {}
        node[arg] = _set(node.get(arg), rest, value)
    elif kind == "append":
        if not isinstance(node, list):
            node = []
        node.append(_set(None, rest, value))
    else:
        if not isinstance(node, list):
            node = []
        node.extend([None] * (arg + 1 - len(node)))
        node[arg] = _set(node[arg], rest, value)
    return node


def _apply_entries(node: Any, entries: list) -> Any:
    for tokens, value in entries:
        node = _set(node, tokens, value)
    return node


class _ShorthandParser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def _peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def _skip(self, newlines: bool = True) -> None:
        while self._peek() in (" ", "\t", "\r") or (newlines and self._peek() == "\n"):
            if self._peek() == "":
                return
            self.pos += 1

    def _error(self, message: str) -> ValueError:
        return ValueError(f"{message} at position {self.pos}")

    def parse(self, base: Any) -> Any:
        self._skip()
        first = self._peek()
        if first == "":
            return copy.deepcopy(base)
        if first == "[":
            self.pos += 1
            result: Any = self._list()
        else:
            if first == "{":
                self.pos += 1
                entries = self._entries("}")
            else:
                entries = self._entries(None)
            result = _apply_entries(copy.deepcopy(base), entries)
        self._skip()
        if self.pos < len(self.text):
            raise self._error("unexpected trailing input")
        return result

    def _skip_separators(self) -> None:
        self._skip()
        while self._peek() == ",":
            self.pos += 1
            self._skip()

    def _entries(self, closing: str | None) -> list:
        entries = []
        while True:
            self._skip_separators()
            c = self._peek()
            if c == "":
                if closing:
                    raise self._error(f"unexpected end of input, expected {closing!r}")
                return entries
            if closing and c == closing:
                self.pos += 1
                return entries
            key = self._key()
            entries.append((key, self._value()))

    def _key(self) -> list[tuple[str, Any]]:
        start = self.pos
        while self._peek() not in ("", ":", "\n", ",", "{", "}"):
            self.pos += 1
        if self._peek() != ":":
            raise self._error("expected ':' after key")
        raw = self.text[start : self.pos].strip()
        self.pos += 1
        if not raw:
            raise self._error("empty key")
        return _parse_key(raw)

    def _value(self) -> Any:
        self._skip(newlines=False)
        c = self._peek()
        if c == "{":
            self.pos += 1
            return _Object(self._entries("}"))
        if c == "[":
            self.pos += 1
            return self._list()
        if c == '"':
            try:
                value, end = json.JSONDecoder().raw_decode(self.text, self.pos)
            except json.JSONDecodeError as exc:
                raise self._error(f"invalid string: {exc.msg}") from exc
            self.pos = end
            return value
        start = self.pos
        while self._peek() not in ("", ",", "}", "]", "\n"):
            self.pos += 1
        if self.pos == start and self._peek() in ("}", "]"):
            raise self._error(f"unexpected {self._peek()!r}")
        return _coerce(self.text[start : self.pos].strip())

    def _list(self) -> list:
        items = []
        while True:
            self._skip_separators()
            c = self._peek()
            if c == "":
                raise self._error("unexpected end of input, expected ']'")
            if c == "]":
                self.pos += 1
                return items
            items.append(_materialize(None, self._value()))


def _apply_shorthand(original: Any, text: str) -> Any:
    return _ShorthandParser(text).parse(original)


# --- Dispatch ------------------------------------------------------------


def apply_patch(content_type: str, original: Any, patch_data: bytes | str) -> Any:
    """Apply a patch body of the given content type to a decoded document.

    Raises PatchError with status 422 for bad patches and 415 for content
    types that are not supported.
    """
    text = patch_data.decode("utf-8") if isinstance(patch_data, bytes) else patch_data
    media = content_type.split(";")[0]

    if media == JSON_PATCH_JSON:
        try:
            operations = json.loads(text)
        except ValueError as exc:
            raise PatchError(422, "Unable to decode JSON Patch", exc) from exc
        return apply_json_patch(original, operations)

    if media in _MERGE_TYPES:
        try:
            patch = json.loads(text)
        except ValueError as exc:
            raise PatchError(422, "Unable to apply patch", exc) from exc
        return apply_merge_patch(original, patch)

    if media == MERGE_PATCH_SHORTHAND:
        try:
            return _apply_shorthand(original, text)
        except ValueError as exc:
            raise PatchError(422, "Unable to apply patch", exc) from exc

    raise PatchError(
        415,
        "Content type should be one of application/merge-patch+json or "
        "application/json-patch+json",
    )


def make_optional_schema(schema: dict[str, Any] | None) -> dict[str, Any] | None:
    """Return a copy of a JSON Schema with every ``required`` list removed."""
    if schema is None:
        return None

    result = {
        key: value
        for key, value in schema.items()
        if key in _COPIED_KEYWORDS or key.startswith("x-")
    }

    if schema.get("items") is not None:
        result["items"] = make_optional_schema(schema["items"])
    if schema.get("properties") is not None:
        result["properties"] = {
            name: make_optional_schema(sub) for name, sub in schema["properties"].items()
        }
    for keyword in ("oneOf", "anyOf", "allOf"):
        if schema.get(keyword) is not None:
            result[keyword] = [make_optional_schema(sub) for sub in schema[keyword]]
    if schema.get("not") is not None:
        result["not"] = make_optional_schema(schema["not"])

    return result