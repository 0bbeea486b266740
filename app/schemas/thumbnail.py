from typing import Any

from pydantic import BaseModel, Field
from datetime import datetime


class GenerateThumbnailRequest(BaseModel):
    """
    Request to generate a thumbnail for the logged-in user.

    Style options are accepted as sent; blank or non-string values fall back
    to the defaults when the prompt is composed.
    """
    title: str | None = Field(default="", description="Video title shown on the thumbnail")
    prompt: str | None = Field(
        default="",
        description="Extra free-text instructions appended to the composed prompt",
    )
    style: Any = Field(default=None, description="Style name, e.g. 'Bold & Graphic'")
    aspect_ratio: Any = Field(default=None, description="Aspect ratio, e.g. '16:9'")
    color_scheme: Any = Field(default=None, description="Color scheme key, e.g. 'vibrant'")
    text_overlay: bool | None = Field(default=True, description="Whether the client renders a text overlay")


class ThumbnailInfo(BaseModel):
    """A persisted thumbnail record."""
    id: str
    user_id: str
    title: str
    prompt_used: str
    style: str
    aspect_ratio: str
    color_scheme: str
    text_overlay: bool
    is_generating: bool = Field(alias="isGenerating")
    image_url: str | None = None
    error: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True
        populate_by_name = True


class GenerateThumbnailResponse(BaseModel):
    """Response after a successful generation."""
    message: str = "Thumbnail Generated"
    thumbnail: ThumbnailInfo


class GenerationErrorResponse(BaseModel):
    """Response body when the generation pipeline fails."""
    message: str
    thumbnail: ThumbnailInfo | None = None
    error: str


class MessageResponse(BaseModel):
    message: str
