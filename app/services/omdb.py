"""OMDb client: keyword search and detail fetches against the external catalog.

HTTP and JSON errors propagate to the caller; a well-formed "not found"
answer (``Response: "False"``) is returned as ``None`` / an empty list.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from app.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


@dataclass
class SearchHit:
    """One row of an OMDb keyword search."""

    title: str
    year: str
    imdb_id: str
    poster: str = ""

    @classmethod
    def from_payload(cls, item: dict[str, Any]) -> SearchHit:
        return cls(
            title=item.get("Title", ""),
            year=item.get("Year", ""),
            imdb_id=item.get("imdbID", ""),
            poster=item.get("Poster", ""),
        )


class OmdbClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.api_key = settings.omdb_api_key if api_key is None else api_key
        self.base_url = base_url or settings.omdb_base_url
        self.timeout = timeout or settings.omdb_timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _get(self, params: dict[str, str]) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(self.base_url, params={**params, "apikey": self.api_key})
            resp.raise_for_status()
            data = resp.json()

        logger.debug(
            "omdb_request",
            params=params,
            response=data.get("Response"),
            error=data.get("Error"),
        )
        return data

    async def search(self, keyword: str) -> list[SearchHit]:
        """Keyword search (``s=``)."""
        data = await self._get({"s": keyword})
        if data.get("Response") != "True":
            return []
        return [SearchHit.from_payload(item) for item in data.get("Search") or []]

    async def get_by_title(self, title: str) -> dict[str, Any] | None:
        """Exact-title detail fetch (``t=``)."""
        data = await self._get({"t": title})
        return data if data.get("Response") == "True" else None

    async def get_by_id(self, imdb_id: str) -> dict[str, Any] | None:
        """Detail fetch by catalog id (``i=``)."""
        data = await self._get({"i": imdb_id})
        return data if data.get("Response") == "True" else None
