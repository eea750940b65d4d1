"""Data structures extracted from a rendered page."""

from __future__ import annotations

from pydantic import BaseModel


class LinkElement(BaseModel):
    href: str
    text: str = ""
    context: str = ""  # DOM region: header, nav, main, footer, aside, ...


class ImageElement(BaseModel):
    src: str
    alt: str = ""
    context: str = ""
    natural_width: int = 0
    complete: bool = True
    lazy: bool = False

    @property
    def is_broken(self) -> bool:
        return not self.complete or self.natural_width == 0


class NavigationResult(BaseModel):
    url: str
    status: int
    ok: bool
    final_url: str = ""
