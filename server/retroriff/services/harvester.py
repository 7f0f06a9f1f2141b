"""Harvest orchestrator.

Runs one harvest end to end:
1. Ask the prioritizer for a search plan (once)
2. Resolve and convert every catalog song concurrently
3. Sort by popularity, most popular first

A song whose resolution or conversion fails is kept with empty content;
only a prioritization failure aborts the harvest.
"""

import asyncio
import logging

from retroriff.core.config import get_settings
from retroriff.schemas.harvest import HarvesterResult, SearchCriteria, Song
from retroriff.services.catalog import CATALOG, CatalogEntry
from retroriff.services.converter import (
    AudioConversionError,
    AudioConverter,
    PlaceholderConverter,
    YouTubeAudioConverter,
)
from retroriff.services.prioritizer import prioritize_sources
from retroriff.services.resolver import (
    MockResolver,
    SongNotFoundError,
    SongResolver,
    YouTubeResolver,
    effective_artist,
)

logger = logging.getLogger(__name__)


def sort_by_popularity(songs: list[Song]) -> list[Song]:
    """Most popular first; equal popularity keeps catalog order."""
    return sorted(songs, key=lambda s: s.popularity, reverse=True)


class Harvester:
    def __init__(
        self,
        resolver: SongResolver,
        converter: AudioConverter,
        step_delay_seconds: float = 0.0,
        catalog: tuple[CatalogEntry, ...] = CATALOG,
    ) -> None:
        self.resolver = resolver
        self.converter = converter
        self.step_delay_seconds = step_delay_seconds
        self.catalog = catalog

    async def _pause(self) -> None:
        if self.step_delay_seconds > 0:
            await asyncio.sleep(self.step_delay_seconds)

    async def _harvest_song(self, entry: CatalogEntry, criteria: SearchCriteria) -> Song:
        artist = effective_artist(entry, criteria)
        file_content = ""
        try:
            video_id = await self.resolver.resolve(artist, entry.title)
            file_content = await self.converter.convert(video_id, entry.title, artist)
        except SongNotFoundError as e:
            logger.warning("Song not found: %s - %s (%s)", artist, entry.title, e)
        except AudioConversionError as e:
            logger.warning("Conversion failed: %s - %s (%s)", artist, entry.title, e)
        except Exception:
            logger.exception("Unexpected error harvesting %s - %s", artist, entry.title)

        await self._pause()
        return Song(
            id=entry.id,
            title=entry.title,
            artist=artist,
            popularity=entry.popularity,
            file_content=file_content,
        )

    async def harvest(self, criteria: SearchCriteria) -> HarvesterResult:
        ai_result = await prioritize_sources(criteria)
        await self._pause()

        songs = await asyncio.gather(
            *(self._harvest_song(entry, criteria) for entry in self.catalog)
        )

        converted = sum(1 for s in songs if s.file_content)
        logger.info("Harvested %d/%d songs via %s", converted, len(songs), ai_result.source)

        return HarvesterResult(ai_result=ai_result, songs=sort_by_popularity(list(songs)))


def build_harvester() -> Harvester:
    """Build the harvester for the configured HARVEST_MODE.

    The two modes are alternatives; a failed YouTube download never falls
    back to placeholder audio.
    """
    settings = get_settings()
    if settings.harvest_mode == "youtube":
        resolver: SongResolver = YouTubeResolver()
        converter: AudioConverter = YouTubeAudioConverter(
            timeout=settings.download_timeout_seconds,
            max_bytes=settings.max_audio_bytes,
        )
    else:
        resolver = MockResolver()
        converter = PlaceholderConverter()
    return Harvester(resolver, converter, step_delay_seconds=settings.harvest_step_delay_seconds)


async def process_query(
    criteria: SearchCriteria, harvester: Harvester | None = None
) -> HarvesterResult:
    """Turn search criteria into a ranked list of songs with audio payloads."""
    harvester = harvester or build_harvester()
    return await harvester.harvest(criteria)
