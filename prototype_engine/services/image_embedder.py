"""
Inline placeholder images in generated HTML.

The preview frame cannot load the model's Unsplash placeholder URLs
(cross-origin), so each one is fetched server-side and replaced with a
base64 data URL before the page is served.
"""
import asyncio
import base64
import re
from typing import Dict, List, Optional

import httpx

from prototype_engine.config import settings
from prototype_engine.logging_config import logger
from prototype_engine.services.image_cache import ImageCache, image_cache


UNSPLASH_URL_PATTERN = re.compile(r"https://source\.unsplash\.com/[^\s\"']+")


def find_unsplash_urls(html: str) -> List[str]:
    """Unique Unsplash URLs in order of first appearance."""
    return list(dict.fromkeys(UNSPLASH_URL_PATTERN.findall(html)))


def sanitize_image_url(url: str) -> str:
    """Keep only the first keyword of a comma-separated query.

    ``?clean,modern,interior`` becomes ``?clean``.
    """
    base, sep, keywords = url.partition("?")
    if sep and keywords and "," in keywords:
        first_keyword = keywords.split(",")[0].strip()
        return f"{base}?{first_keyword}"
    return url


async def image_url_to_data_url(client: httpx.AsyncClient, url: str) -> str:
    """Download an image and return it as a data URL."""
    response = await client.get(url)
    response.raise_for_status()

    mime_type = response.headers.get("content-type", "image/jpeg").split(";")[0].strip()
    if not mime_type.startswith("image/"):
        raise ValueError(f"URL did not return an image: {url} ({mime_type})")

    encoded = base64.b64encode(response.content).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


async def _resolve_image(
    client: httpx.AsyncClient,
    original_url: str,
    cache: ImageCache
) -> str:
    cached = cache.get_cached_image(original_url)
    if cached:
        return cached

    process_url = sanitize_image_url(original_url)
    try:
        data_url = await image_url_to_data_url(client, process_url)
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Error processing image", url=process_url, error=str(e))
        return settings.IMAGE_FALLBACK_URL

    cache.set_cached_image(original_url, data_url)
    return data_url


async def embed_unsplash_images(
    html_content: str,
    client: Optional[httpx.AsyncClient] = None,
    cache: Optional[ImageCache] = None
) -> str:
    """Replace every Unsplash URL in the HTML with inline image data.

    Unreachable images become the fallback placeholder URL. If the whole
    pass fails the original HTML is returned.
    """
    unique_urls = find_unsplash_urls(html_content)
    if not unique_urls:
        return html_content

    cache = cache or image_cache
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=settings.IMAGE_FETCH_TIMEOUT, follow_redirects=True)

    try:
        results = await asyncio.gather(
            *(_resolve_image(client, url, cache) for url in unique_urls)
        )
        url_map: Dict[str, str] = dict(zip(unique_urls, results))

        processed_html = html_content
        # Longest first so a URL that prefixes another is not replaced inside it.
        for original_url in sorted(url_map, key=len, reverse=True):
            processed_html = processed_html.replace(original_url, url_map[original_url])

        logger.info("Embedded images", count=len(url_map))
        return processed_html

    except Exception as e:
        logger.error("An error occurred during image embedding", error=str(e), exc_info=True)
        return html_content
    finally:
        if owns_client:
            await client.aclose()
