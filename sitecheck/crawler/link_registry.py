"""Link registry — records which pages link to each discovered URL."""

from __future__ import annotations

from sitecheck.models.findings import LinkReference


class LinkRegistry:
    """Target URL -> ordered, de-duplicated list of LinkReference.

    A reference is a duplicate when another reference for the same target has
    the same (found_on_page, link_text); the first one seen wins, so repeated
    identical anchors on one page attribute once.
    """

    def __init__(self):
        self._refs: dict[str, list[LinkReference]] = {}
        self._keys: dict[str, set[tuple[str, str]]] = {}

    def register(self, url: str, reference: LinkReference) -> bool:
        """Attribute `url` to `reference`. Returns False if already recorded."""
        keys = self._keys.setdefault(url, set())
        if reference.key in keys:
            return False
        keys.add(reference.key)
        self._refs.setdefault(url, []).append(reference)
        return True

    def references_for(self, url: str) -> list[LinkReference]:
        return list(self._refs.get(url, ()))

    def __contains__(self, url: object) -> bool:
        return url in self._refs

    def __len__(self) -> int:
        return len(self._refs)
