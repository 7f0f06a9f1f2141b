"""The fixed song catalog harvested on every request."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CatalogEntry:
    id: int
    title: str
    artist: str
    popularity: int  # 0-100


CATALOG: tuple[CatalogEntry, ...] = (
    CatalogEntry(1, "Bohemian Rhapsody", "Queen", 95),
    CatalogEntry(2, "Like a Rolling Stone", "Bob Dylan", 92),
    CatalogEntry(3, "Stairway to Heaven", "Led Zeppelin", 98),
    CatalogEntry(4, "Smells Like Teen Spirit", "Nirvana", 90),
    CatalogEntry(5, "Hotel California", "Eagles", 88),
    CatalogEntry(6, "Sweet Child O' Mine", "Guns N' Roses", 85),
    CatalogEntry(7, "Imagine", "John Lennon", 89),
    CatalogEntry(8, "Billie Jean", "Michael Jackson", 93),
)
