"""Result packaging: size estimate, zip-vs-list choice, and zip archives."""

import base64
import binascii
import io
import logging
import re
import zipfile
from collections.abc import Iterable
from datetime import datetime

from retroriff.core.time import epoch_millis
from retroriff.schemas.harvest import Delivery, Song

logger = logging.getLogger(__name__)

# 10 MB in bytes
ZIP_THRESHOLD_BYTES = 10 * 1024 * 1024

# Decoded bytes per base64 character (ignores padding)
BASE64_DECODE_RATIO = 0.75

ARCHIVE_COMPRESS_LEVEL = 9

UNSAFE_MEMBER_CHARS = re.compile(r'[\\/?%*:|"<>]')


def estimate_total_size(songs: Iterable[Song]) -> float:
    """Approximate decoded size in bytes of all song payloads."""
    encoded = sum(len(song.file_content or "") for song in songs)
    return encoded * BASE64_DECODE_RATIO


def choose_delivery(total_size_bytes: float) -> Delivery:
    """Offer a zip download only above the threshold; smaller harvests are listed."""
    if total_size_bytes > ZIP_THRESHOLD_BYTES:
        return "archive"
    return "list"


def archive_member_name(song: Song) -> str:
    return UNSAFE_MEMBER_CHARS.sub("-", f"{song.artist} - {song.title}.mp3")


def generate_archive_filename(now: datetime | None = None) -> str:
    return f"RetroRiff-Harvester-{epoch_millis(now)}.zip"


def build_archive(songs: Iterable[Song]) -> bytes:
    """Zip every song that has content; songs with empty content are skipped.

    Raises ValueError if no song has content or a payload is not valid base64.
    """
    buffer = io.BytesIO()
    written = 0
    with zipfile.ZipFile(
        buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=ARCHIVE_COMPRESS_LEVEL
    ) as archive:
        for song in songs:
            if not song.file_content:
                continue
            try:
                data = base64.b64decode(song.file_content, validate=True)
            except binascii.Error as e:
                raise ValueError(f"Song {song.id} has invalid base64 content") from e
            archive.writestr(archive_member_name(song), data)
            written += 1

    if written == 0:
        raise ValueError("No songs with audio content to archive")

    logger.info("Built archive with %d songs (%d bytes)", written, buffer.tell())
    return buffer.getvalue()
