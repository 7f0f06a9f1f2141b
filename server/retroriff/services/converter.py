"""Audio conversion: resolved video id -> base64 audio payload.

PlaceholderConverter synthesizes a small text payload offline.
YouTubeAudioConverter streams the real audio track into memory.
"""

import asyncio
import base64
import logging
from typing import Protocol

import httpx
import yt_dlp

logger = logging.getLogger(__name__)

YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


class AudioConversionError(RuntimeError):
    """Audio for a single song could not be produced."""


class AudioConverter(Protocol):
    async def convert(self, video_id: str, title: str, artist: str) -> str: ...


def encode_audio(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class PlaceholderConverter:
    async def convert(self, video_id: str, title: str, artist: str) -> str:
        logger.debug("Converting video ID %s to placeholder audio", video_id)
        text = f'This is a mock audio file for "{title}" by {artist}. (Video ID: {video_id})'
        return encode_audio(text.encode("utf-8"))


class YouTubeAudioConverter:
    """Download the best audio-only stream of a YouTube video into memory."""

    def __init__(
        self,
        timeout: float = 60,
        max_bytes: int = 50 * 1024 * 1024,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.transport = transport

    def _extract_stream(self, video_id: str) -> tuple[str, dict[str, str]]:
        """Return (stream URL, request headers) for the best audio format."""
        ydl_opts = {
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "format": "bestaudio/best",
        }
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            info = ydl.extract_info(YOUTUBE_WATCH_URL.format(video_id=video_id), download=False)
        url = (info or {}).get("url")
        if not url:
            raise AudioConversionError(f"No audio stream available for video {video_id}")
        return url, info.get("http_headers") or {}

    async def _download(self, url: str, headers: dict[str, str]) -> bytes:
        chunks: list[bytes] = []
        received = 0
        async with httpx.AsyncClient(
            timeout=self.timeout, follow_redirects=True, transport=self.transport
        ) as client:
            async with client.stream("GET", url, headers=headers) as response:
                response.raise_for_status()
                async for chunk in response.aiter_bytes():
                    received += len(chunk)
                    if received > self.max_bytes:
                        raise AudioConversionError(
                            f"Audio stream exceeds {self.max_bytes} bytes"
                        )
                    chunks.append(chunk)
        return b"".join(chunks)

    async def convert(self, video_id: str, title: str, artist: str) -> str:
        logger.info("Downloading audio for %s - %s (video %s)", artist, title, video_id)
        try:
            url, headers = await asyncio.to_thread(self._extract_stream, video_id)
            data = await self._download(url, headers)
        except (httpx.HTTPError, yt_dlp.DownloadError) as e:
            raise AudioConversionError(f"Audio download failed for video {video_id}: {e}") from e

        if not data:
            raise AudioConversionError(f"Empty audio stream for video {video_id}")
        logger.info("Downloaded %d bytes for video %s", len(data), video_id)
        return encode_audio(data)
