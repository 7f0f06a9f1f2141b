"""Pydantic schemas for the harvest workflow.

Fields are snake_case in Python and camelCase on the wire
(``aiResult``, ``searchQuery``, ``fileContent``).
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from retroriff.core.validation import is_blank, normalize_single_line

EMPTY_CRITERIA_MESSAGE = "At least one field must be filled."

Delivery = Literal["archive", "list"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchCriteria(CamelModel):
    artists: str | None = Field(default=None, max_length=200)
    genre: str | None = Field(default=None, max_length=200)
    year: str | None = Field(default=None, max_length=200)

    @field_validator("artists", "genre", "year")
    @classmethod
    def normalize_fields(cls, v: str | None) -> str | None:
        return normalize_single_line(v)

    @model_validator(mode="after")
    def require_one_field(self) -> "SearchCriteria":
        if is_blank(self.artists) and is_blank(self.genre) and is_blank(self.year):
            raise ValueError(EMPTY_CRITERIA_MESSAGE)
        return self

    def as_prompt_input(self) -> dict[str, str]:
        """Criteria with absent fields coerced to empty strings."""
        return {
            "artists": self.artists or "",
            "genre": self.genre or "",
            "year": self.year or "",
        }


class PrioritizationResult(CamelModel):
    model_config = ConfigDict(frozen=True)

    search_query: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1)

    @field_validator("search_query", "source")
    @classmethod
    def reject_blank(cls, v: str) -> str:
        if is_blank(v):
            raise ValueError("must not be blank")
        return v.strip()


class Song(CamelModel):
    id: int
    title: str
    artist: str
    popularity: int = Field(..., ge=0, le=100)
    file_content: str = ""


class HarvesterResult(CamelModel):
    ai_result: PrioritizationResult
    songs: list[Song] = []


class HarvestResponse(HarvesterResult):
    total_size_bytes: float = 0
    delivery: Delivery = "list"


class CatalogSong(CamelModel):
    id: int
    title: str
    artist: str
    popularity: int
