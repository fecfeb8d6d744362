"""Generic record type produced by the structured-text codec."""

from __future__ import annotations

from typing import Any, NamedTuple, Union

from pydantic import BaseModel


class Ratio(NamedTuple):
    """An ``a/b`` value such as ``3/10``."""

    current: int
    max: int


# A section is a key/value map, a bullet list, or a table of rows.
SectionContent = Union[dict[str, Any], list[str], list[dict[str, Any]]]


class Document(BaseModel):
    name: str = "Unknown"
    sections: dict[str, Any] = {}

    def section(self, key: str) -> dict[str, Any]:
        """Key/value section, created on demand. A list/table section is replaced."""
        value = self.sections.get(key)
        if not isinstance(value, dict):
            value = {}
            self.sections[key] = value
        return value

    def list_section(self, key: str) -> list[str]:
        value = self.sections.get(key)
        if not isinstance(value, list) or any(isinstance(v, dict) for v in value):
            value = []
            self.sections[key] = value
        return value

    def table_section(self, key: str) -> list[dict[str, Any]]:
        value = self.sections.get(key)
        if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
            value = []
            self.sections[key] = value
        return value

    def metadata(self) -> dict[str, Any]:
        return self.section("metadata")
