"""Validation and bulk dedup of harvested posts."""

from typing import List, Optional

from psycopg import Connection
from pydantic import BaseModel, Field
from rich.console import Console

from ..db.posts import PostStorage
from .http import is_http_url
from .models import RawPost

console = Console()


def validate_raw_post(post: RawPost) -> Optional[str]:
    """Reason a post cannot enter the pipeline, or None when it is valid.

    The publish date is always derivable: a missing or unparsable date falls
    back to the harvest time when the post is stored.
    """
    if not post.title or not post.title.strip():
        return "missing title"
    if not is_http_url(post.link):
        return "link is not an absolute http(s) URL"
    if post.source_id is None and not post.source_name:
        return "missing source tag"
    return None


class DedupResult(BaseModel):
    """Outcome of filtering a harvested batch."""

    new_posts: List[RawPost] = Field(default_factory=list)
    invalid: int = Field(0, description="Posts failing validation")
    existing: int = Field(0, description="Posts whose link is already stored")
    duplicates: int = Field(0, description="Repeated links within the batch")

    def stats(self) -> dict:
        return {
            "new": len(self.new_posts),
            "invalid": self.invalid,
            "existing": self.existing,
            "duplicates": self.duplicates,
        }


class DedupGateway:
    """Keep only valid posts whose link is not stored yet.

    Existence is checked for the whole batch in one query.
    """

    def __init__(self, storage: PostStorage) -> None:
        self.storage = storage

    def filter_new(self, conn: Connection, posts: List[RawPost]) -> DedupResult:
        result = DedupResult()
        unique: List[RawPost] = []
        seen = set()

        for post in posts:
            post.link = post.link.strip()
            reason = validate_raw_post(post)
            if reason:
                result.invalid += 1
                console.print(f"[dim]Skipping '{post.title[:60]}' ({post.link}): {reason}[/dim]")
                continue
            if post.link in seen:
                result.duplicates += 1
                continue
            seen.add(post.link)
            unique.append(post)

        if not unique:
            return result

        exists = self.storage.links_exist(conn, [p.link for p in unique])
        for post in unique:
            if exists.get(post.link):
                result.existing += 1
            else:
                result.new_posts.append(post)

        return result
