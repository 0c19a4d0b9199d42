"""Split identifiers into words and re-join them in different casing styles."""

from __future__ import annotations

import re
import unicodedata
from enum import Enum, auto
from typing import Callable, Iterable

Transform = Callable[[str], str]

COMMON_INITIALISMS = frozenset(
    {
        "ACL", "API", "ASCII", "CPU", "CSS", "DNS", "EOF", "GUID", "HTML",
        "HTTP", "HTTPS", "ID", "IP", "JSON", "LHS", "QPS", "RAM", "RHS", "RPC",
        "SLA", "SMTP", "SQL", "SSH", "TCP", "TLS", "TTL", "UDP", "UI", "UID",
        "UUID", "URI", "URL", "UTF8", "VM", "XML", "XMPP", "XSRF", "XSS",
        # Media initialisms
        "1080P", "2D", "3D", "4K", "8K", "AAC", "AC3", "CDN", "DASH", "DRM",
        "DVR", "EAC3", "FPS", "GOP", "H264", "H265", "HD", "HLS", "MJPEG",
        "MP2T", "MP3", "MP4", "MPEG2", "MPEG4", "NTSC", "PCM", "RGB", "RGBA",
        "RTMP", "RTP", "SCTE", "SCTE35", "SMPTE", "UPID", "UPIDS", "VOD",
        "YUV420", "YUV422", "YUV444",
    }
)

COMMON_SUFFIXES = frozenset({"D", "GB", "K", "KB", "KBPS", "MB", "MPBS", "P", "TB"})

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1


class _State(Enum):
    NONE = auto()
    LOWER = auto()
    FIRST_UPPER = auto()
    UPPER = auto()
    SYMBOL = auto()


def _category(c: str) -> str:
    return unicodedata.category(c)


def _is_upper(c: str) -> bool:
    return _category(c) == "Lu"


def _is_lower(c: str) -> bool:
    return _category(c) == "Ll"


def _is_letter(c: str) -> bool:
    return _category(c).startswith("L")


def _is_break(c: str) -> bool:
    return c.isspace() or _category(c).startswith("P")


def identity(part: str) -> str:
    """Return the part unchanged; it must be a string."""
    if not isinstance(part, str):
        raise TypeError(f"expected a string part, got {type(part).__name__}")
    return part


def initialism(part: str) -> str:
    """Upper-case common initialisms such as ID or HTTP."""
    upper = part.upper()
    return upper if upper in COMMON_INITIALISMS else part


def split(value: str) -> list[str]:
    """Split a value into words, honouring case changes, numbers and symbols."""
    results: list[str] = []
    start = 0
    state = _State.NONE

    for i, c in enumerate(value):
        if _is_break(c):
            if i > start:
                results.append(value[start:i])
            start = i + 1
            state = _State.NONE
            continue

        if state not in (_State.FIRST_UPPER, _State.UPPER) and _is_upper(c):
            if start != i:
                results.append(value[start:i])
                start = i
            state = _State.FIRST_UPPER
        elif state is _State.FIRST_UPPER and _is_upper(c):
            state = _State.UPPER
        elif state is not _State.SYMBOL and not _is_letter(c):
            if start != i:
                results.append(value[start:i])
                start = i
            state = _State.SYMBOL
        elif state is not _State.LOWER and _is_lower(c):
            if state is _State.UPPER:
                # The last upper-case letter starts the lower-case word.
                if i > 0 and start != i - 1:
                    results.append(value[start : i - 1])
                    start = i - 1
            elif state is not _State.FIRST_UPPER:
                if i > 0 and start != i:
                    results.append(value[start:i])
                    start = i
            state = _State.LOWER

    if start < len(value):
        results.append(value[start:])
    return results


def _apply(part: str, transforms: Iterable[Transform]) -> str:
    for transform in transforms:
        part = transform(part)
        if part == "":
            break
    return part


def join(parts: Iterable[str], sep: str, *transforms: Transform) -> str:
    """Join parts with a separator after running each through the transforms.

    Parts that a transform turns into the empty string are dropped.
    """
    transformed = (_apply(part, transforms) for part in parts)
    return sep.join(part for part in transformed if part != "")


def _is_int(part: str) -> bool:
    if not _INT_RE.fullmatch(part):
        return False
    return _INT_MIN <= int(part) <= _INT_MAX


def merge_numbers(parts: list[str], *suffixes: str) -> list[str]:
    """Merge number parts with adjacent word parts, e.g. ``h264`` or ``4k``.

    Without suffixes a default set of common ones is used; pass an empty
    string to disable it.
    """
    lookup = {s.upper() for s in suffixes} if suffixes else COMMON_SUFFIXES
    results: list[str] = []
    prev_num = False
    skip = False

    for i, part in enumerate(parts):
        if skip:
            skip = False
            continue
        following = parts[i + 1] if i + 1 < len(parts) else None

        if _is_int(part):
            if following is not None and following.upper() in lookup:
                results.append(part + following)
                skip = True
                continue
            if not prev_num:
                if i == 0:
                    results.append(part)
                else:
                    results[-1] += part
                prev_num = True
                continue
            prev_num = True
        else:
            if i == 1 and prev_num:
                results[0] += part
                prev_num = False
                continue
            prev_num = False

        results.append(part)

    return results


def _is_separator(c: str) -> bool:
    if c.isascii():
        return not (c.isalnum() or c == "_")
    if _is_letter(c) or _category(c) == "Nd":
        return False
    return c.isspace()


def _title(part: str) -> str:
    chars = []
    prev = " "
    for c in part:
        if _is_separator(prev):
            titled = c.title()
            chars.append(titled if len(titled) == 1 else c)
        else:
            chars.append(c)
        prev = c
    return "".join(chars)


def camel(value: str, *transforms: Transform) -> str:
    """Return a CamelCase version of the value (parts lower-cased by default)."""
    chosen = transforms or (str.lower,)
    return join(split(value), "", *chosen, _title)


def lower_camel(value: str, *transforms: Transform) -> str:
    """Return a lowerCamelCase version of the value."""
    result = camel(value, *transforms)
    return result[:1].lower() + result[1:]


def snake(value: str, *transforms: Transform) -> str:
    """Return a snake_case version of the value."""
    chosen = transforms or (str.lower,)
    return join(merge_numbers(split(value)), "_", *chosen)


def kebab(value: str, *transforms: Transform) -> str:
    """Return a kebab-case version of the value."""
    chosen = transforms or (str.lower,)
    return join(merge_numbers(split(value)), "-", *chosen)