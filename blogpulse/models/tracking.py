"""Tracker and notification models."""

from typing import Literal

from pydantic import Field

from .base import DBModel

TargetType = Literal["company", "author"]


class Tracker(DBModel):
    """A user's subscription to a company or author."""

    user_id: str = Field(..., description="Subscribing user")
    target_type: TargetType = Field(..., description="company or author")
    target_id: str = Field(..., description="Company name or author name")


class Notification(DBModel):
    """A notification created when a new post matches a tracker."""

    user_id: str = Field(..., description="Recipient user")
    post_id: int = Field(..., description="Matching post")
    target_type: TargetType = Field(..., description="company or author")
    target_id: str = Field(..., description="Matched target")
    is_read: bool = Field(False, description="Whether the user has read it")
