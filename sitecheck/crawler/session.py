"""Per-crawl mutable state shared by the driver and the detection engine."""

from __future__ import annotations

from dataclasses import dataclass, field

from sitecheck.url_utils import origin_of

from .frontier import Frontier
from .link_registry import LinkRegistry


@dataclass
class CrawlSession:
    """Everything one crawl mutates. Created at start, discarded at the end."""

    start_url: str
    frontier: Frontier
    registry: LinkRegistry = field(default_factory=LinkRegistry)
    origin: str = ""
    current_page_url: str = ""
    total_crawled: int = 0
    broken_links_count: int = 0
    broken_images_count: int = 0
    console_errors_count: int = 0
    resources_checked: int = 0
    # target URL -> status of every link target already reported broken
    broken_targets: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.origin:
            self.origin = origin_of(self.start_url)

    def summary(self) -> dict[str, int]:
        return {
            "pages_crawled": self.total_crawled,
            "resources_checked": self.resources_checked,
            "broken_links": self.broken_links_count,
            "broken_images": self.broken_images_count,
            "console_errors": self.console_errors_count,
            "remaining_in_queue": self.frontier.remaining,
        }
