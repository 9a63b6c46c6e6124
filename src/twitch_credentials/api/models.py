"""Helix response models.

Wire fields are mapped onto snake_case attributes; unknown fields are ignored.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class HelixUser(BaseModel):
    """A Twitch user as returned by ``GET /users``."""

    id: str = Field(..., description="User ID")
    login: str = Field(..., description="Login name")
    display_name: str = Field(..., description="Display name")
    type: str = Field(default="", description="Staff/admin type, empty for normal users")
    broadcaster_type: str = Field(default="", description="affiliate, partner or empty")
    description: str = Field(default="", description="Channel description")
    profile_image_url: str = Field(default="", description="Profile image URL")
    offline_image_url: str = Field(default="", description="Offline image URL")
    created_at: datetime | None = Field(default=None, description="Account creation time")
    email: str | None = Field(default=None, description="Email, requires user:read:email")


class HelixStream(BaseModel):
    """A live stream as returned by ``GET /streams``."""

    id: str = Field(..., description="Stream ID")
    user_id: str = Field(..., description="Broadcaster ID")
    user_login: str = Field(..., description="Broadcaster login")
    user_name: str = Field(..., description="Broadcaster display name")
    game_id: str = Field(default="", description="Category ID")
    game_name: str = Field(default="", description="Category name")
    type: str = Field(default="live", description="Stream type")
    title: str = Field(default="", description="Stream title")
    viewer_count: int = Field(default=0, description="Current viewers")
    started_at: datetime | None = Field(default=None, description="Stream start time")
    language: str = Field(default="", description="Broadcast language")
    thumbnail_url: str = Field(default="", description="Thumbnail URL template")
    tags: list[str] = Field(default_factory=list, description="Stream tags")
    is_mature: bool = Field(default=False, description="Mature content flag")


class CommercialResult(BaseModel):
    """Outcome of ``POST /channels/commercial``.

    Attributes:
        length: Length of the commercial that runs, in seconds.
        message: Message from Twitch, e.g. why a shorter commercial ran.
        retry_after: Seconds until the next commercial may run.
    """

    length: int = Field(..., description="Commercial length in seconds")
    message: str = Field(default="", description="Message from Twitch")
    retry_after: int = Field(default=0, description="Seconds until the next commercial")
