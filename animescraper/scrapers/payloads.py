"""
Origin Payload Module

Pydantic schemas for the JSON the origin API renders. Records are
validated one at a time so a malformed record is skipped, not fatal.
"""

import json
import logging
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError, field_validator

from animescraper.errors import PayloadError
from animescraper.models import Episode, SearchResult

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class SearchRecord(BaseModel):
    """One entry of ?m=search data."""

    id: int | str
    session: str
    title: str
    poster: Optional[str] = None
    status: Optional[str] = None
    type: Optional[str] = None
    episodes: Optional[int] = None
    year: Optional[int] = None
    score: Optional[float] = None

    @field_validator("episodes", "year", mode="before")
    @classmethod
    def lenient_int(cls, value: Any) -> Optional[int]:
        """Unparseable counts ("", "?", "N/A") become None."""
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return None

    @field_validator("score", mode="before")
    @classmethod
    def lenient_float(cls, value: Any) -> Optional[float]:
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    def to_result(self) -> SearchResult:
        return SearchResult(
            external_id=str(self.id),
            session_id=self.session,
            title=self.title,
            poster_url=self.poster,
            status=self.status,
            media_type=self.type,
            episode_count=self.episodes,
            year=self.year,
            score=self.score,
        )


class ReleaseRecord(BaseModel):
    """One entry of ?m=release data."""

    id: int | str
    session: str
    episode: float
    title: Optional[str] = None
    duration: Optional[str] = None
    snapshot: Optional[str] = None

    def to_episode(self, anime_session_id: str) -> Episode:
        return Episode(
            external_id=str(self.id),
            session_id=self.session,
            anime_session_id=anime_session_id,
            episode_number=self.episode,
            title=self.title or None,
            duration=self.duration,
            snapshot_url=self.snapshot,
        )


class ReleaseMeta(BaseModel):
    """Paging fields of a ?m=release response."""

    last_page: int = 1

    @field_validator("last_page", mode="before")
    @classmethod
    def at_least_one(cls, value: Any) -> Any:
        if value is None:
            return 1
        return value

    @field_validator("last_page")
    @classmethod
    def clamp(cls, value: int) -> int:
        return max(1, value)


def parse_body(text: str) -> dict:
    """
    Parse rendered body text as a JSON object.

    Raises:
        PayloadError: Text is not a JSON object
    """
    try:
        payload = json.loads(text.strip())
    except (json.JSONDecodeError, AttributeError) as e:
        raise PayloadError(f"Body is not JSON: {e}") from e

    if not isinstance(payload, dict):
        raise PayloadError(f"Expected a JSON object, got {type(payload).__name__}")
    return payload


def data_records(payload: dict) -> list:
    """
    The "data" list of an API payload.

    Raises:
        PayloadError: "data" is missing or not a list
    """
    data = payload.get("data")
    if not isinstance(data, list):
        raise PayloadError("Payload has no data list")
    return data


def validate_records(records: list, model: Type[M]) -> list[M]:
    """Validate each record, skipping the ones that don't fit the schema."""
    valid: list[M] = []
    for index, record in enumerate(records):
        try:
            valid.append(model.model_validate(record))
        except ValidationError as e:
            logger.debug(f"Skipping malformed {model.__name__} #{index}: {e.error_count()} errors")
    return valid


def parse_search(text: str) -> list[SearchResult]:
    """Parse a search response into SearchResults."""
    records = data_records(parse_body(text))
    return [r.to_result() for r in validate_records(records, SearchRecord)]


def parse_release(text: str, anime_session_id: str) -> tuple[list[Episode], int]:
    """
    Parse a release response.

    Returns:
        (episodes, last_page)
    """
    payload = parse_body(text)
    records = data_records(payload)

    try:
        last_page = ReleaseMeta.model_validate(payload).last_page
    except ValidationError:
        last_page = 1

    episodes = [r.to_episode(anime_session_id) for r in validate_records(records, ReleaseRecord)]
    return episodes, last_page
