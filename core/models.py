"""
Core data models for the VideoHub API

Defines the persisted entities. References between entities are plain id
columns; the query layer joins them in application code, and readers must
tolerate references to rows that no longer exist.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy import CheckConstraint, Column, DateTime, JSON, UniqueConstraint
from sqlmodel import SQLModel, Field


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampedModel(SQLModel):
    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), index=True)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class User(TimestampedModel, table=True):
    """
    A registered account. Every user is also a channel.
    """

    username: str = Field(max_length=30, unique=True, index=True)
    email: str = Field(max_length=254, unique=True, index=True)
    full_name: str = Field(max_length=100)
    password_hash: str = Field(max_length=128)
    avatar: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    cover_image: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    refresh_token: Optional[str] = Field(default=None, max_length=1024)
    # Most recent first, capped at WATCH_HISTORY_LIMIT
    watch_history: List[str] = Field(default_factory=list, sa_column=Column(JSON))


class Video(TimestampedModel, table=True):
    video_file: Dict[str, Any] = Field(sa_column=Column(JSON, nullable=False))
    thumbnail: Dict[str, Any] = Field(sa_column=Column(JSON, nullable=False))
    title: str = Field(max_length=200)
    description: str = Field(max_length=5000)
    duration: float = Field(default=0)
    views: int = Field(default=0)
    is_published: bool = Field(default=True, index=True)
    is_public: bool = Field(default=True)
    owner_id: str = Field(foreign_key="user.id", index=True, max_length=32)


class Comment(TimestampedModel, table=True):
    content: str = Field(max_length=2000)
    video_id: str = Field(index=True, max_length=32)
    owner_id: str = Field(foreign_key="user.id", index=True, max_length=32)


class Like(TimestampedModel, table=True):
    """
    A like targets exactly one of video, comment or tweet.
    """

    __table_args__ = (
        UniqueConstraint("liked_by_id", "video_id", name="uq_like_video"),
        UniqueConstraint("liked_by_id", "comment_id", name="uq_like_comment"),
        UniqueConstraint("liked_by_id", "tweet_id", name="uq_like_tweet"),
        CheckConstraint(
            "(CASE WHEN video_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN comment_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN tweet_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_like_single_target",
        ),
    )

    liked_by_id: str = Field(foreign_key="user.id", index=True, max_length=32)
    video_id: Optional[str] = Field(default=None, index=True, max_length=32)
    comment_id: Optional[str] = Field(default=None, index=True, max_length=32)
    tweet_id: Optional[str] = Field(default=None, index=True, max_length=32)


class Subscription(TimestampedModel, table=True):
    __table_args__ = (
        UniqueConstraint("subscriber_id", "channel_id", name="uq_subscription"),
        CheckConstraint("subscriber_id <> channel_id", name="ck_subscription_not_self"),
    )

    subscriber_id: str = Field(foreign_key="user.id", index=True, max_length=32)
    channel_id: str = Field(foreign_key="user.id", index=True, max_length=32)


class Playlist(TimestampedModel, table=True):
    name: str = Field(max_length=100)
    description: str = Field(max_length=1000)
    owner_id: str = Field(foreign_key="user.id", index=True, max_length=32)
    videos: List[str] = Field(default_factory=list, sa_column=Column(JSON))


class Tweet(TimestampedModel, table=True):
    content: str = Field(max_length=280)
    owner_id: str = Field(foreign_key="user.id", index=True, max_length=32)
