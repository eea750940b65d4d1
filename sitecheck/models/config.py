"""Configuration models for the crawler."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ClassifierConfig(BaseModel):
    """Extension lists, noise patterns and deny-listed hosts used by the classifier."""

    image_extensions: list[str] = Field(
        default_factory=lambda: [
            ".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico", ".webp",
            ".bmp", ".avif", ".tif", ".tiff",
        ]
    )
    document_extensions: list[str] = Field(
        default_factory=lambda: [
            ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
            ".odt", ".ods", ".odp", ".rtf", ".txt", ".csv",
        ]
    )
    other_resource_extensions: list[str] = Field(
        default_factory=lambda: [
            # archives
            ".zip", ".rar", ".7z", ".tar", ".gz", ".tgz", ".bz2",
            # media
            ".mp3", ".mp4", ".wav", ".ogg", ".webm", ".avi", ".mov", ".m4a",
            # styles, scripts, fonts
            ".css", ".js", ".mjs", ".map", ".woff", ".woff2", ".ttf", ".otf", ".eot",
            # data
            ".xml", ".json", ".rss", ".atom",
            # binaries
            ".exe", ".dmg", ".apk", ".iso",
        ]
    )
    page_extensions: list[str] = Field(
        default_factory=lambda: [
            ".html", ".htm", ".xhtml", ".php", ".asp", ".aspx", ".jsp", ".cfm", ".shtml",
        ]
    )
    noise_patterns: list[str] = Field(
        default_factory=lambda: [
            "cors",
            "cross-origin",
            "access-control-allow-origin",
            "net::err_aborted",
            "net::err_blocked_by_client",
            "net::err_blocked_by_response",
            "net::err_failed",
            "mixed content",
            "content security policy",
            "refused to load",
            "refused to execute",
            "securityerror",
        ]
    )
    hostile_domains: list[str] = Field(
        default_factory=lambda: [
            "facebook.com", "fb.com", "instagram.com", "twitter.com", "x.com",
            "linkedin.com", "tiktok.com", "pinterest.com", "reddit.com",
            "youtube.com", "apps.apple.com", "itunes.apple.com", "play.google.com",
            "whatsapp.com", "wa.me", "t.me", "telegram.me", "messenger.com",
        ]
    )

    @field_validator(
        "image_extensions", "document_extensions", "other_resource_extensions",
        "page_extensions", mode="after",
    )
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        return [e.lower() if e.startswith(".") else f".{e.lower()}" for e in v]

    @field_validator("noise_patterns", "hostile_domains", mode="after")
    @classmethod
    def lowercase(cls, v: list[str]) -> list[str]:
        return [p.lower() for p in v]


class CrawlConfig(BaseModel):
    max_pages: int = Field(default=1000, ge=1)
    batch_size: int = Field(default=100, ge=1)
    navigation_timeout_ms: int = 30000
    head_timeout_seconds: float = 10.0
    sitemap_timeout_seconds: float = 10.0
    wait_until: str = "networkidle"
    headless: bool = True
    user_agent: Optional[str] = None
    check_external_links: bool = False
    report_lazy_images: bool = False

    @field_validator("wait_until")
    @classmethod
    def check_wait_until(cls, v: str) -> str:
        allowed = ("load", "domcontentloaded", "networkidle", "commit")
        if v not in allowed:
            raise ValueError(f"wait_until must be one of {allowed}")
        return v


class SiteCheckConfig(BaseModel):
    start_url: str = ""
    sitemap_url: Optional[str] = None
    crawl: CrawlConfig = Field(default_factory=CrawlConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)

    @classmethod
    def load(cls, path: str | Path) -> "SiteCheckConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
