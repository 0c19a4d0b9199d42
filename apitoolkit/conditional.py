"""Conditional request handling with ETags and modification times."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

_WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


@dataclass
class ErrorDetail:
    """Describes one problem with a request: what, where and which value."""

    message: str = ""
    location: str = ""
    value: Any = None

    def __str__(self) -> str:
        return f"{self.message} ({self.location}: {self.value})"


class StatusError(Exception):
    """An error carrying an HTTP status code and optional details."""

    def __init__(
        self, status: int, message: str = "", errors: Iterable[ErrorDetail] = ()
    ) -> None:
        super().__init__(message or str(status))
        self.status = status
        self.message = message
        self.errors = list(errors)


def _trim_etag(value: str) -> str:
    if value.startswith("W/") and len(value) > 2:
        value = value[2:]
    return value.strip('"')


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _http_date(value: datetime) -> str:
    value = value.astimezone(timezone.utc)
    return (
        f"{_DAYS[value.weekday()]}, {value.day:02d} {_MONTHS[value.month - 1]} "
        f"{value.year:04d} {value.hour:02d}:{value.minute:02d}:{value.second:02d} GMT"
    )


@dataclass
class Params:
    """Conditional request headers sent by a client."""

    if_match: list[str] = field(default_factory=list)
    if_none_match: list[str] = field(default_factory=list)
    if_modified_since: datetime | None = None
    if_unmodified_since: datetime | None = None
    # Writes fail with 412; reads answer 304 Not Modified.
    _is_write: bool = field(default=False, init=False, repr=False)

    def resolve(self, method: str) -> list[ErrorDetail]:
        """Record whether the request is a write; never reports errors."""
        if method in _WRITE_METHODS:
            self._is_write = True
        return []

    def has_conditional_params(self) -> bool:
        """Return True if any conditional header was sent."""
        return bool(
            self.if_match
            or self.if_none_match
            or self.if_modified_since is not None
            or self.if_unmodified_since is not None
        )

    def precondition_failed(self, etag: str, modified: datetime | None) -> None:
        """Raise StatusError if the resource state fails the conditions.

        Writes raise 412 Precondition Failed with details; reads raise
        304 Not Modified. Returns None when every condition holds.
        """
        failed = False
        errors: list[ErrorDetail] = []
        modified_at = _as_utc(modified) or _ZERO_TIME
        found = f"found resource with ETag {etag}" if etag else "found no existing resource"

        for match in self.if_none_match:
            trimmed = _trim_etag(match)
            if trimmed == etag or (trimmed == "*" and etag != ""):
                if self._is_write:
                    errors.append(
                        ErrorDetail(
                            message=f"If-None-Match: {match} precondition failed, {found}",
                            location="headers.If-None-Match",
                            value=match,
                        )
                    )
                failed = True

        if self.if_match and not any(_trim_etag(m) == etag for m in self.if_match):
            if self._is_write:
                errors.append(
                    ErrorDetail(
                        message=f"If-Match precondition failed, {found}",
                        location="headers.If-Match",
                        value=self.if_match,
                    )
                )
            failed = True

        since = _as_utc(self.if_modified_since)
        if since is not None and not modified_at > since:
            if self._is_write:
                errors.append(
                    ErrorDetail(
                        message=(
                            f"If-Modified-Since: {_http_date(since)} precondition "
                            f"failed, resource was modified at {_http_date(modified_at)}"
                        ),
                        location="headers.If-Modified-Since",
                        value=_http_date(since),
                    )
                )
            failed = True

        unmodified = _as_utc(self.if_unmodified_since)
        if unmodified is not None and modified_at > unmodified:
            if self._is_write:
                errors.append(
                    ErrorDetail(
                        message=(
                            f"If-Unmodified-Since: {_http_date(unmodified)} precondition "
                            f"failed, resource was modified at {_http_date(modified_at)}"
                        ),
                        location="headers.If-Unmodified-Since",
                        value=_http_date(unmodified),
                    )
                )
            failed = True

        if failed:
            if self._is_write:
                raise StatusError(412, "Precondition Failed", errors)
            raise StatusError(304)