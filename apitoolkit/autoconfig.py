"""CLI auto-configuration settings advertised through an OpenAPI extension."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class AutoConfigVar:
    """A variable the user is prompted for during auto-configuration."""

    description: str = ""
    example: str = ""
    default: Any = None
    enum: list[Any] = field(default_factory=list)
    # Excluded values are only used in parameter templates, never sent.
    exclude: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form, leaving out empty fields."""
        result: dict[str, Any] = {}
        if self.description:
            result["description"] = self.description
        if self.example:
            result["example"] = self.example
        if self.default is not None:
            result["default"] = self.default
        if self.enum:
            result["enum"] = list(self.enum)
        if self.exclude:
            result["exclude"] = True
        return result


@dataclass
class AutoConfig:
    """Auto-configuration settings, placed under the ``x-cli-config`` key."""

    security: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    prompt: dict[str, AutoConfigVar] = field(default_factory=dict)
    params: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form; security and params are always present."""
        result: dict[str, Any] = {"security": self.security}
        if self.headers:
            result["headers"] = dict(self.headers)
        if self.prompt:
            result["prompt"] = {k: v.to_dict() for k, v in self.prompt.items()}
        result["params"] = None if self.params is None else dict(self.params)
        return result