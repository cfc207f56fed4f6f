"""Media search result schema."""

from pydantic import BaseModel, Field


class MediaItem(BaseModel):
    """Simplified media search result (GIF preferred, MP4/WebP fallbacks)."""

    id: str
    title: str = "Sports content"
    url: str
    gif_url: str = ""
    mp4_url: str = ""
    webp_url: str = ""
    content_type: str = Field("gif", description="gif, clip or sticker")
    width: int = 400
    height: int = 300
    preview_url: str = ""
