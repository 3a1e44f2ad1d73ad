"""
Note Schemas.

Pydantic models for notes as the remote store returns them and for the
editable fields sent back on insert/update.

Wire names follow the remote `notes` table (user_id, media_url, created_at);
code uses the attribute names.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MediaKind(str, Enum):
    """How an attachment is rendered."""

    IMAGE = "image"
    VIDEO = "video"


VIDEO_SUFFIX = ".mp4"


def media_kind(media_url: str | None, video_suffix: str = VIDEO_SUFFIX) -> MediaKind | None:
    """
    Classify an attachment URL for rendering.

    Args:
        media_url: Public URL of the uploaded asset, or None
        video_suffix: Suffix that marks a video

    Returns:
        VIDEO for URLs ending in the video suffix, IMAGE for any other URL,
        None when there is no attachment
    """
    if not media_url:
        return None
    if media_url.endswith(video_suffix):
        return MediaKind.VIDEO
    return MediaKind.IMAGE


class Note(BaseModel):
    """A single user-owned note as held in the local collection."""

    id: str = Field(description="Opaque identifier assigned by the remote store")
    owner_id: str = Field(alias="user_id", description="Owning user")
    title: str = Field(default="", description="Note title, may be empty")
    content: str = Field(default="", description="Note body, may contain newlines")
    media_url: str | None = Field(default=None, description="Attachment URL")
    created_at: datetime = Field(description="Creation timestamp, sole ordering key")

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    @field_validator("title", "content", mode="before")
    @classmethod
    def _none_as_empty(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("media_url", mode="before")
    @classmethod
    def _blank_as_missing(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def media_kind(self) -> MediaKind | None:
        """Rendering kind of the attachment, None when absent."""
        return media_kind(self.media_url)


class NoteDraft(BaseModel):
    """Editable fields of a note, sent on insert and update."""

    title: str = ""
    content: str = ""
    media_url: str | None = None

    def to_row(self) -> dict[str, str | None]:
        """Row payload using the remote column names."""
        return {
            "title": self.title,
            "content": self.content,
            "media_url": self.media_url,
        }


class CurrentUser(BaseModel):
    """The authenticated owner as reported by the remote auth service."""

    id: str

    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")


class HighlightSpan(BaseModel):
    """A contiguous fragment of text, flagged when it matched the search term."""

    text: str
    matched: bool

    model_config = ConfigDict(frozen=True)
