"""Finding records emitted by the detection engine.

Field names serialize in camelCase (``foundOnPage``, ``statusCode``, ...) so the
event stream matches what dashboard consumers expect.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    """Return current UTC time in ISO format."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class LinkReference(_WireModel):
    """One attribution: which page links to a target, with what text, from where."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    found_on_page: str
    link_text: str = ""
    element_context: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.found_on_page, self.link_text)


class BrokenLink(_WireModel):
    url: str
    status_code: int
    found_on_page: str
    link_text: str = ""
    element_context: str = ""
    timestamp: str = Field(default_factory=utc_now_iso)


class BrokenImage(_WireModel):
    src: str
    found_on_page: str
    alt_text: str = ""
    element_context: str = ""
    reason: str
    timestamp: str = Field(default_factory=utc_now_iso)


class ConsoleError(_WireModel):
    message: str
    found_on_page: str
    type: Literal["error", "warning", "js_error"] = "error"
    timestamp: str = Field(default_factory=utc_now_iso)
