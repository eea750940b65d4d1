"""Resource classification — maps URLs and content types to resource kinds."""

from __future__ import annotations

from typing import Literal, Optional
from urllib.parse import urlparse

from sitecheck.models.config import ClassifierConfig

ResourceKind = Literal["page", "image", "document", "other"]

_DOCUMENT_CONTENT_TYPES = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument",
    "application/vnd.ms-",
    "application/vnd.oasis.opendocument",
    "application/rtf",
    "text/csv",
    "text/plain",
)
_PAGE_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


def _path_extension(url: str) -> str:
    """Return the lowercased extension of the URL's last path segment, or ''."""
    path = urlparse(url).path.lower()
    segment = path.rsplit("/", 1)[-1]
    if "." not in segment:
        return ""
    return "." + segment.rsplit(".", 1)[-1]


class ResourceClassifier:
    """Pure classification rules, parameterized by a ClassifierConfig."""

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or ClassifierConfig()
        self._images = frozenset(self.config.image_extensions)
        self._documents = frozenset(self.config.document_extensions)
        self._pages = frozenset(self.config.page_extensions)
        self._non_page = (
            self._images | self._documents | frozenset(self.config.other_resource_extensions)
        )

    def is_non_page_resource(self, url: str) -> bool:
        return _path_extension(url) in self._non_page

    def classify_resource(self, url: str, content_type: Optional[str] = None) -> ResourceKind:
        ext = _path_extension(url)
        if ext in self._images:
            return "image"
        if ext in self._documents:
            return "document"

        if content_type:
            ctype = content_type.split(";", 1)[0].strip().lower()
            if ctype.startswith("image/"):
                return "image"
            if ctype.startswith(_DOCUMENT_CONTENT_TYPES):
                return "document"
            if ctype in _PAGE_CONTENT_TYPES:
                return "page"

        if not ext or ext in self._pages:
            return "page"
        return "other"

    def is_noise_error(self, message: str) -> bool:
        if not message:
            return False
        lowered = message.lower()
        return any(p in lowered for p in self.config.noise_patterns)

    def is_hostile_external_domain(self, url: str) -> bool:
        host = (urlparse(url).hostname or "").lower()
        if not host:
            return False
        return any(
            host == domain or host.endswith("." + domain)
            for domain in self.config.hostile_domains
        )


_default = ResourceClassifier()


def is_non_page_resource(url: str) -> bool:
    return _default.is_non_page_resource(url)


def classify_resource(url: str, content_type: Optional[str] = None) -> ResourceKind:
    return _default.classify_resource(url, content_type)


def is_noise_error(message: str) -> bool:
    return _default.is_noise_error(message)


def is_hostile_external_domain(url: str) -> bool:
    return _default.is_hostile_external_domain(url)
