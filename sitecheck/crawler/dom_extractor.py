"""DOM extraction — collects links and images from a rendered page.

Each record carries a ``context`` string naming the nearest landmark region
(``header``, ``nav#main-menu``, ``footer``, ...) so findings can say where on
the page the broken element sits.
"""

from __future__ import annotations

import logging

from playwright.async_api import Page

from sitecheck.models.site_model import ImageElement, LinkElement

logger = logging.getLogger(__name__)

_CONTEXT_JS = """
function describeContext(el) {
    const landmarks = ['header', 'nav', 'main', 'footer', 'aside', 'article', 'section', 'form'];
    const roles = {
        banner: 'header', navigation: 'nav', main: 'main',
        contentinfo: 'footer', complementary: 'aside',
    };
    let node = el.parentElement;
    while (node && node !== document.body) {
        const tag = node.tagName.toLowerCase();
        const role = node.getAttribute('role');
        const name = landmarks.includes(tag) ? tag : (role && roles[role]) || '';
        if (name) {
            if (node.id) return name + '#' + node.id;
            if (node.className && typeof node.className === 'string') {
                const cls = node.className.trim().split(/\\s+/)[0];
                if (cls) return name + '.' + cls;
            }
            return name;
        }
        node = node.parentElement;
    }
    return 'body';
}
"""

_LINKS_JS = "() => {" + _CONTEXT_JS + """
    const results = [];
    document.querySelectorAll('a[href], area[href]').forEach(el => {
        const href = el.href;
        if (!href ||
            href.startsWith('javascript:') ||
            href.startsWith('mailto:') ||
            href.startsWith('tel:') ||
            href.startsWith('data:') ||
            href.startsWith('blob:')) return;
        let text = (el.innerText || el.textContent || '').trim().replace(/\\s+/g, ' ');
        if (!text) {
            text = el.getAttribute('aria-label') || el.getAttribute('title') || '';
            if (!text) {
                const img = el.querySelector('img[alt]');
                if (img) text = img.getAttribute('alt');
            }
        }
        results.push({
            href: href,
            text: text.substring(0, 200),
            context: describeContext(el),
        });
    });
    return results;
}"""

_IMAGES_JS = "() => {" + _CONTEXT_JS + """
    return Array.from(document.querySelectorAll('img')).map(img => ({
        src: img.currentSrc || img.src || '',
        alt: img.getAttribute('alt') || '',
        context: describeContext(img),
        natural_width: img.naturalWidth || 0,
        complete: img.complete,
        lazy: img.getAttribute('loading') === 'lazy',
    }));
}"""


async def extract_links(page: Page) -> list[LinkElement]:
    """Return every followable <a>/<area> link on the page with its text and region."""
    try:
        raw_links = await page.evaluate(_LINKS_JS)
    except Exception as e:
        logger.error("Link extraction failed: %s", e)
        return []
    links = [
        LinkElement(
            href=raw.get("href", ""),
            text=raw.get("text", ""),
            context=raw.get("context", ""),
        )
        for raw in raw_links
        if raw.get("href")
    ]
    logger.debug("Extracted %d links", len(links))
    return links


async def extract_images(page: Page) -> list[ImageElement]:
    """Return load state for every <img> on the page."""
    try:
        raw_images = await page.evaluate(_IMAGES_JS)
    except Exception as e:
        logger.error("Image extraction failed: %s", e)
        return []
    images = [
        ImageElement(
            src=raw.get("src", ""),
            alt=raw.get("alt", ""),
            context=raw.get("context", ""),
            natural_width=raw.get("natural_width", 0),
            complete=raw.get("complete", True),
            lazy=raw.get("lazy", False),
        )
        for raw in raw_images
    ]
    logger.debug("Extracted %d images", len(images))
    return images
