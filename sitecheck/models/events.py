"""Event records pushed to the caller's event sink."""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel

from .findings import BrokenImage, BrokenLink, ConsoleError

EventType = Literal["log", "broken_link", "broken_image", "console_error", "done", "error"]

TERMINAL_EVENT_TYPES = frozenset({"done", "error"})


class CrawlEvent(BaseModel):
    type: EventType
    message: str = ""
    data: Optional[Union[BrokenLink, BrokenImage, ConsoleError]] = None

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENT_TYPES

    def to_wire(self) -> dict:
        payload: dict = {"type": self.type, "message": self.message}
        if self.data is not None:
            payload["data"] = self.data.to_wire()
        return payload

    @classmethod
    def log(cls, message: str) -> "CrawlEvent":
        return cls(type="log", message=message)

    @classmethod
    def broken_link(cls, finding: BrokenLink) -> "CrawlEvent":
        return cls(
            type="broken_link",
            message=(
                f"Broken link ({finding.status_code}): {finding.url} "
                f"| Found on: {finding.found_on_page}"
            ),
            data=finding,
        )

    @classmethod
    def broken_image(cls, finding: BrokenImage) -> "CrawlEvent":
        return cls(
            type="broken_image",
            message=(
                f"Broken image: {finding.src} ({finding.reason}) "
                f"| Found on: {finding.found_on_page}"
            ),
            data=finding,
        )

    @classmethod
    def console_error(cls, finding: ConsoleError) -> "CrawlEvent":
        return cls(
            type="console_error",
            message=f"Console {finding.type}: {finding.message} | Page: {finding.found_on_page}",
            data=finding,
        )

    @classmethod
    def done(cls, message: str) -> "CrawlEvent":
        return cls(type="done", message=message)

    @classmethod
    def error(cls, message: str) -> "CrawlEvent":
        return cls(type="error", message=message)
