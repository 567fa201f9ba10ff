"""
Editor-side view of a listing's media as URL lists plus a thumbnail pointer.

The media table stays canonical; this is what the edit form manipulates and
what the save path reconciles back into media rows.
"""

from dataclasses import dataclass, field
from typing import List


@dataclass
class MediaSelection:
    photo_urls: List[str] = field(default_factory=list)
    video_urls: List[str] = field(default_factory=list)
    thumbnail_url: str | None = None

    def add_photo(self, url: str) -> None:
        if url in self.photo_urls:
            return
        self.photo_urls.append(url)
        if self.thumbnail_url is None:
            self.thumbnail_url = url

    def remove_photo(self, url: str) -> None:
        """Drop a photo; if it was the thumbnail, fall back to the first remaining photo."""
        if url not in self.photo_urls:
            return
        self.photo_urls.remove(url)
        if self.thumbnail_url == url:
            self.thumbnail_url = self.photo_urls[0] if self.photo_urls else None

    def add_video(self, url: str) -> None:
        if url not in self.video_urls:
            self.video_urls.append(url)

    def remove_video(self, url: str) -> None:
        if url in self.video_urls:
            self.video_urls.remove(url)

    def select_thumbnail(self, url: str | None) -> None:
        """Point the thumbnail at one of the photos; anything else falls back."""
        if url is not None and url in self.photo_urls:
            self.thumbnail_url = url
        else:
            self.thumbnail_url = self.photo_urls[0] if self.photo_urls else None

    @classmethod
    def from_media(cls, media: List[dict], url_for, thumbnail_url: str | None = None) -> "MediaSelection":
        """Build the selection from media rows ordered by sort_order."""
        ordered = sorted(media, key=lambda m: m["sort_order"])
        selection = cls(
            photo_urls=[url_for(m) for m in ordered if m["type"] == "photo"],
            video_urls=[url_for(m) for m in ordered if m["type"] == "video"],
        )
        selection.select_thumbnail(thumbnail_url)
        return selection
