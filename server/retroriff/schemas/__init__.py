from retroriff.schemas.harvest import (
    CatalogSong,
    HarvesterResult,
    HarvestResponse,
    PrioritizationResult,
    SearchCriteria,
    Song,
)

__all__ = [
    "CatalogSong",
    "HarvestResponse",
    "HarvesterResult",
    "PrioritizationResult",
    "SearchCriteria",
    "Song",
]
