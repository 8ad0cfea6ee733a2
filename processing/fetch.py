"""
Fetcher: reads local files and HTTP(S) URLs for the pipeline.

Blocking calls go through a requests.Session; the async wrappers push them to
a worker thread so the event loop is never blocked by I/O.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Optional, Tuple, Union

import requests
from loguru import logger

from .errors import FetchError


def is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


class Fetcher:
    """Fetch text and JSON from local paths or URLs."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
        base_dir: Optional[Union[str, Path]] = None,
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.base_dir = Path(base_dir) if base_dir else None

    def _request(self, url: str) -> requests.Response:
        """GET a URL, raising FetchError for transport errors and non-2xx statuses."""
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.error(f"HTTP error during GET {url}: {status}")
            raise FetchError(url, str(e), status_code=status) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Request exception during GET {url}: {e}")
            raise FetchError(url, str(e)) from e

    def _local_path(self, location: str) -> Path:
        path = Path(location)
        if not path.is_absolute() and self.base_dir is not None:
            path = self.base_dir / path
        return path

    def get_text(self, location: str) -> str:
        if is_url(location):
            logger.debug(f"🌐 GET {location}")
            return self._request(location).text

        path = self._local_path(location)
        logger.debug(f"📄 Reading {path}")
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise FetchError(str(path), f"cannot read file: {e}") from e

    def get_json(self, location: str) -> Any:
        text = self.get_text(location)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise FetchError(location, f"invalid JSON: {e}") from e

    def get_json_with_status(self, location: str) -> Tuple[int, Any]:
        """
        GET a URL and return (status_code, parsed body) without raising on
        HTTP error statuses, for endpoints that send JSON error bodies.
        """
        try:
            response = self.session.get(location, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request exception during GET {location}: {e}")
            raise FetchError(location, str(e)) from e
        try:
            return response.status_code, response.json()
        except ValueError as e:
            raise FetchError(location, f"invalid JSON: {e}", status_code=response.status_code) from e

    async def fetch_text(self, location: str) -> str:
        return await asyncio.to_thread(self.get_text, location)

    async def fetch_json(self, location: str) -> Any:
        return await asyncio.to_thread(self.get_json, location)

    async def fetch_json_with_status(self, location: str) -> Tuple[int, Any]:
        return await asyncio.to_thread(self.get_json_with_status, location)
