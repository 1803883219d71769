"""Shared cookie store for the API client and the external player."""

import json
import logging
import threading
import time
from pathlib import Path
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class CookieStore:
    """
    Cookie jar shared by every request of a session.

    Once attached to a client, the store and the client read and write the
    same jar. Access through the store goes through one lock.
    """

    def __init__(self, cookies: Optional[httpx.Cookies] = None):
        self._cookies = httpx.Cookies(cookies)
        self._lock = threading.Lock()

    def attach(self, cookies: httpx.Cookies) -> None:
        """
        Adopt a client's live cookie jar.

        Cookies already in the store are copied into `cookies`, which then
        becomes the store's jar, so every later `set`, `clear` or response
        from that client is seen by both.
        """
        with self._lock:
            for cookie in self._cookies.jar:
                cookies.jar.set_cookie(cookie)
            self._cookies = cookies

    def extract(self, response: httpx.Response) -> None:
        """Store every cookie set by a response."""
        with self._lock:
            self._cookies.extract_cookies(response)

    def set(self, name: str, value: str, domain: str = "", path: str = "/") -> None:
        with self._lock:
            self._cookies.set(name, value, domain=domain, path=path)

    def snapshot(self) -> httpx.Cookies:
        """Copy of the current cookies."""
        with self._lock:
            return httpx.Cookies(self._cookies)

    def header_for(self, url: str) -> str | None:
        """Cookie header a request to `url` would carry."""
        request = httpx.Request("GET", url)
        with self._lock:
            self._cookies.set_cookie_header(request)
        return request.headers.get("Cookie")

    def clear(self) -> None:
        with self._lock:
            self._cookies.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cookies.jar)

    # ===== PERSISTENCE =====

    def save(self, path: Path) -> None:
        """Write cookies to a JSON file."""
        with self._lock:
            data = [
                {
                    "name": c.name,
                    "value": c.value,
                    "domain": c.domain,
                    "path": c.path,
                    "expires": c.expires,
                }
                for c in self._cookies.jar
            ]

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    @classmethod
    def load(cls, path: Path) -> "CookieStore":
        """Read cookies saved by `save`; expired ones are dropped."""
        store = cls()
        if not path.exists():
            return store

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to load cookies from %s: %s", path, e)
            return store

        now = time.time()
        for item in data:
            expires = item.get("expires")
            if expires is not None and expires < now:
                continue
            store.set(
                item["name"],
                item["value"],
                domain=item.get("domain", ""),
                path=item.get("path", "/"),
            )
        return store
