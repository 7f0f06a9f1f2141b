"""Song resolution: catalog entry -> video identifier.

Two interchangeable resolvers:
- MockResolver: deterministic id derived from the "artist - title" query
- YouTubeResolver: first yt-dlp search hit for the same query
"""

import asyncio
import logging
from typing import Protocol

import yt_dlp

from retroriff.schemas.harvest import SearchCriteria
from retroriff.services.catalog import CatalogEntry

logger = logging.getLogger(__name__)

# YouTube video ids are 11 characters
VIDEO_ID_LENGTH = 11


class SongNotFoundError(LookupError):
    """No video matched the search query."""


class SongResolver(Protocol):
    async def resolve(self, artist: str, title: str) -> str: ...


def build_search_query(artist: str, title: str) -> str:
    return f"{artist} - {title}"


def effective_artist(entry: CatalogEntry, criteria: SearchCriteria) -> str:
    """User-supplied artists override the catalog artist when present."""
    if criteria.artists:
        return criteria.artists
    return entry.artist


def mock_video_id(query: str) -> str:
    return query.encode("utf-8").hex()[:VIDEO_ID_LENGTH]


class MockResolver:
    async def resolve(self, artist: str, title: str) -> str:
        query = build_search_query(artist, title)
        logger.debug("Mock search for: %s", query)
        return mock_video_id(query)


class YouTubeResolver:
    """Resolve songs with a single-result yt-dlp search."""

    def __init__(self, ydl_opts: dict | None = None) -> None:
        self.ydl_opts = {
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "extract_flat": True,
            **(ydl_opts or {}),
        }

    def _search(self, query: str) -> dict | None:
        with yt_dlp.YoutubeDL(self.ydl_opts) as ydl:
            return ydl.extract_info(f"ytsearch1:{query}", download=False)

    async def resolve(self, artist: str, title: str) -> str:
        query = build_search_query(artist, title)
        logger.info("Searching YouTube for: %s", query)
        try:
            info = await asyncio.to_thread(self._search, query)
        except yt_dlp.DownloadError as e:
            raise SongNotFoundError(f"Search failed for {query!r}: {e}") from e

        entries = (info or {}).get("entries") or []
        for entry in entries:
            if entry and entry.get("id"):
                return entry["id"]
        raise SongNotFoundError(f"No video found for {query!r}")
