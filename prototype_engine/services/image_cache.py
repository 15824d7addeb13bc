"""
Session cache of source image URL -> base64 data URL.

Stored as a JSON list of [url, data_url] pairs under one key so a whole
session's images expire together.
"""
import json
from typing import Dict, Optional

from prototype_engine.config import settings
from prototype_engine.logging_config import logger
from prototype_engine.storage.kv_store import KeyValueStore, get_kv_store


class ImageCache:
    def __init__(self, kv: Optional[KeyValueStore] = None, cache_key: Optional[str] = None):
        self._kv = kv
        self._key = cache_key or settings.IMAGE_CACHE_KEY

    @property
    def kv(self) -> KeyValueStore:
        return self._kv or get_kv_store()

    def _load(self) -> Dict[str, str]:
        try:
            cached_data = self.kv.get(self._key)
            if cached_data:
                parsed = json.loads(cached_data)
                if isinstance(parsed, list):
                    return {url: data_url for url, data_url in parsed}
        except (ValueError, TypeError) as e:
            logger.error("Failed to read image cache, clearing it", error=str(e))
            self.kv.delete(self._key)
        return {}

    def _save(self, cache: Dict[str, str]) -> None:
        try:
            self.kv.set(self._key, json.dumps(list(cache.items())), ttl=settings.IMAGE_CACHE_TTL)
        except Exception as e:
            logger.error("Failed to save image cache. Cache may be full.", error=str(e))

    def get_cached_image(self, url: str) -> Optional[str]:
        return self._load().get(url)

    def set_cached_image(self, url: str, data_url: str) -> None:
        cache = self._load()
        cache[url] = data_url
        self._save(cache)

    def clear(self) -> None:
        self.kv.delete(self._key)


image_cache = ImageCache()
