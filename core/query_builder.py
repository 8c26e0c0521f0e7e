"""
Pipeline Builder: per-resource query recipes.

Each function validates its identifiers and returns a `Pipeline` for one of
the fixed list or detail shapes the API serves. Nothing is executed here;
the pagination engine or a service runs the result.

Key Components:
- `ListOptions`: Parsed and validated page, page size, sort field and sort
  direction for one resource type.
- Recipes: `video_comments`, `videos`, `channel_subscribers`,
  `subscribed_channels`, `liked_videos`, `user_playlists`, `playlist_detail`,
  `user_tweets`, `tweet_detail`, `channel_stats`, `video_detail`, `watch_history`,
  `channel_profile`.

Architectural Design:
- Identifiers are validated before a pipeline is built, so a malformed id
  aborts the request before any query runs.
- Sortable fields are declared per resource. Anything else is a validation
  error rather than a silent no-op sort.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from core.pagination import normalize_page_options
from core.pipeline import (
    AddFields,
    DropEmpty,
    Eq,
    Exists,
    First,
    FirstValue,
    Group,
    IContains,
    Lookup,
    Match,
    Pipeline,
    Project,
    Sort,
    Stage,
    Sum,
    Unwind,
    get_path,
    size_of,
    sum_of,
)
from core.validation import InputValidator

USER_CARD_FIELDS = ("fullName", "username", "avatar")

VIDEO_FIELDS = (
    "videoFile",
    "thumbnail",
    "title",
    "description",
    "duration",
    "views",
    "isPublished",
    "isPublic",
    "ownerId",
    "createdAt",
    "updatedAt",
)

SORT_FIELDS: Dict[str, Tuple[str, ...]] = {
    "comments": ("createdAt", "updatedAt"),
    "videos": ("createdAt", "updatedAt", "views", "duration", "title"),
    "subscribers": ("subscribedAt", "username", "fullName"),
    "channels": ("subscribedAt", "username", "fullName"),
    "likedVideos": ("createdAt", "likedAt", "views", "duration", "title"),
    "playlists": ("createdAt", "updatedAt", "name", "videoCount"),
    "tweets": ("createdAt",),
}

DEFAULT_SORT_FIELD: Dict[str, str] = {
    "subscribers": "subscribedAt",
    "channels": "subscribedAt",
}


@dataclass(frozen=True)
class ListOptions:
    resource: str
    page: int = 1
    page_size: int = 10
    sort_by: str = "createdAt"
    sort_type: str = "desc"

    @classmethod
    def parse(
        cls,
        resource: str,
        page: Any = None,
        page_size: Any = None,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
    ) -> "ListOptions":
        paging = normalize_page_options(page, page_size)
        sort_field = sort_by or DEFAULT_SORT_FIELD.get(resource, "createdAt")
        InputValidator.validate_choice(sort_field, SORT_FIELDS[resource], "sortBy")
        return cls(
            resource=resource,
            page=paging["page"],
            page_size=paging["page_size"],
            sort_by=sort_field,
            sort_type=InputValidator.validate_sort_direction(sort_type),
        )

    def sort_stage(self) -> Sort:
        return Sort(self.sort_by, self.sort_type)


def _keep(*names: str) -> Dict[str, Any]:
    return {name: True for name in names}


def owner_join(
    local_field: str = "ownerId",
    as_field: str = "ownerDetails",
    fields: Tuple[str, ...] = USER_CARD_FIELDS,
) -> Tuple[Stage, Stage]:
    """Join the owning user (projected to a small card) and take the first match"""
    return (
        Lookup("users", local_field, as_field, pipeline=[Project(_keep(*fields))]),
        First(as_field),
    )


def video_comments(video_id: str, options: ListOptions) -> Pipeline:
    video_id = InputValidator.validate_object_id(video_id, "video ID")
    return Pipeline(
        "comments",
        [
            Match(Eq("videoId", video_id)),
            *owner_join(),
            Project(_keep("content", "videoId", "ownerId", "ownerDetails", "createdAt", "updatedAt")),
            options.sort_stage(),
        ],
    )


def videos(
    options: ListOptions,
    query: Optional[str] = None,
    owner_id: Optional[str] = None,
    is_published: Optional[bool] = True,
    is_public: Optional[bool] = True,
) -> Pipeline:
    predicates = []
    if query and query.strip():
        predicates.append(IContains(("title", "description"), query.strip()))
    if owner_id is not None:
        predicates.append(Eq("ownerId", InputValidator.validate_object_id(owner_id, "user ID")))
    if is_published is not None:
        predicates.append(Eq("isPublished", is_published))
    if is_public is not None:
        predicates.append(Eq("isPublic", is_public))

    stages = [Match(*predicates)] if predicates else []
    stages += [
        *owner_join(),
        Project(_keep(*VIDEO_FIELDS, "ownerDetails")),
        options.sort_stage(),
    ]
    return Pipeline("videos", stages)


def _subscription_users(match_field: str, user_id: str, join_field: str, options: ListOptions) -> Pipeline:
    details = "subscriberDetails" if join_field == "subscriberId" else "channelDetails"
    return Pipeline(
        "subscriptions",
        [
            Match(Eq(match_field, user_id)),
            Lookup("users", join_field, details, pipeline=[Project(_keep(*USER_CARD_FIELDS))]),
            First(details),
            Project(
                {
                    "id": f"{details}.id",
                    "fullName": f"{details}.fullName",
                    "username": f"{details}.username",
                    "avatar": f"{details}.avatar",
                    "subscribedAt": "createdAt",
                }
            ),
            options.sort_stage(),
        ],
    )


def channel_subscribers(channel_id: str, options: ListOptions) -> Pipeline:
    """Users subscribed to the channel"""
    channel_id = InputValidator.validate_object_id(channel_id, "channel ID")
    return _subscription_users("channelId", channel_id, "subscriberId", options)


def subscribed_channels(subscriber_id: str, options: ListOptions) -> Pipeline:
    """Channels the user is subscribed to"""
    subscriber_id = InputValidator.validate_object_id(subscriber_id, "subscriber ID")
    return _subscription_users("subscriberId", subscriber_id, "channelId", options)


def liked_videos(user_id: str, options: ListOptions) -> Pipeline:
    user_id = InputValidator.validate_object_id(user_id, "user ID")
    liked_video_fields = (
        "thumbnail",
        "videoFile",
        "title",
        "description",
        "duration",
        "views",
        "isPublished",
        "ownerId",
        "createdAt",
    )
    return Pipeline(
        "likes",
        [
            Match(Eq("likedById", user_id), Exists("videoId")),
            Lookup("videos", "videoId", "videoDetails", pipeline=[Project(_keep(*liked_video_fields))]),
            # Likes on deleted videos are orphans
            DropEmpty("videoDetails"),
            First("videoDetails"),
            *owner_join("videoDetails.ownerId", "videoOwnerDetails"),
            Project(
                {
                    "id": "videoDetails.id",
                    **{name: f"videoDetails.{name}" for name in liked_video_fields if name != "createdAt"},
                    "videoOwnerDetails": True,
                    "likedAt": "createdAt",
                    "createdAt": "videoDetails.createdAt",
                }
            ),
            options.sort_stage(),
        ],
    )


def user_playlists(owner_id: str, options: ListOptions) -> Pipeline:
    owner_id = InputValidator.validate_object_id(owner_id, "user ID")
    return Pipeline(
        "playlists",
        [
            Match(Eq("ownerId", owner_id)),
            Lookup("videos", "videos", "playlistVideos", pipeline=[Project({})]),
            AddFields(videoCount=size_of("playlistVideos")),
            *owner_join(),
            Project(_keep("name", "description", "videoCount", "ownerId", "ownerDetails", "createdAt", "updatedAt")),
            options.sort_stage(),
        ],
    )


def playlist_detail(playlist_id: str) -> Pipeline:
    playlist_id = InputValidator.validate_object_id(playlist_id, "playlist ID")
    return Pipeline(
        "playlists",
        [
            Match(Eq("id", playlist_id)),
            *owner_join(),
            Lookup(
                "videos",
                "videos",
                "playlistVideos",
                pipeline=[
                    *owner_join(as_field="videoOwnerDetails", fields=("fullName", "username")),
                    Project(
                        _keep(
                            "title",
                            "description",
                            "thumbnail",
                            "duration",
                            "views",
                            "createdAt",
                            "videoOwnerDetails",
                        )
                    ),
                ],
            ),
            Project(
                {
                    "name": True,
                    "description": True,
                    "ownerId": True,
                    "ownerDetails": True,
                    "videos": "playlistVideos",
                    "videoCount": size_of("playlistVideos"),
                    "createdAt": True,
                    "updatedAt": True,
                }
            ),
        ],
    )


def user_tweets(owner_id: str, sort_type: Optional[str] = None) -> Pipeline:
    """Tweets are only ever ordered by creation time"""
    owner_id = InputValidator.validate_object_id(owner_id, "user ID")
    return Pipeline(
        "tweets",
        [
            Match(Eq("ownerId", owner_id)),
            *owner_join(),
            Project(_keep("content", "ownerId", "ownerDetails", "createdAt", "updatedAt")),
            Sort("createdAt", InputValidator.validate_sort_direction(sort_type)),
        ],
    )


def _video_like_total(document: Dict[str, Any]) -> int:
    return (get_path(document, "videos.videoLikes") or 0) + (
        get_path(document, "videos.commentLikes") or 0
    )


def channel_stats(channel_id: str) -> Pipeline:
    """
    One record of channel totals: subscribers, published videos, views, and
    likes on the channel's videos plus likes on comments under them.
    """
    channel_id = InputValidator.validate_object_id(channel_id, "channel ID")
    return Pipeline(
        "users",
        [
            Match(Eq("id", channel_id)),
            Lookup("subscriptions", "id", "subscribers", foreign_field="channelId"),
            Lookup(
                "videos",
                "id",
                "videos",
                foreign_field="ownerId",
                pipeline=[
                    Lookup("likes", "id", "likes", foreign_field="videoId"),
                    Lookup(
                        "comments",
                        "id",
                        "comments",
                        foreign_field="videoId",
                        pipeline=[Lookup("likes", "id", "likes", foreign_field="commentId")],
                    ),
                    AddFields(
                        videoLikes=size_of("likes"),
                        commentLikes=sum_of("comments", size_of("likes")),
                    ),
                ],
            ),
            AddFields(subscriberCount=size_of("subscribers")),
            Unwind("videos", preserve_empty=True),
            Group(
                "id",
                totalSubscribers=FirstValue("subscriberCount"),
                totalVideos=Sum(lambda d: 1 if get_path(d, "videos.isPublished") else 0),
                totalViews=Sum("videos.views"),
                totalLikes=Sum(_video_like_total),
            ),
            Project(_keep("totalSubscribers", "totalVideos", "totalViews", "totalLikes"), keep_id=False),
        ],
    )


def video_detail(video_id: str) -> Pipeline:
    video_id = InputValidator.validate_object_id(video_id, "video ID")
    return Pipeline(
        "videos",
        [
            Match(Eq("id", video_id)),
            *owner_join(),
            Project(_keep(*VIDEO_FIELDS, "ownerDetails")),
        ],
    )


def watch_history(user_id: str) -> Pipeline:
    """The user's history videos in history order; deleted videos drop out"""
    user_id = InputValidator.validate_object_id(user_id, "user ID")
    return Pipeline(
        "users",
        [
            Match(Eq("id", user_id)),
            Lookup(
                "videos",
                "watchHistory",
                "history",
                pipeline=[
                    *owner_join(),
                    Project(
                        _keep(
                            "thumbnail",
                            "title",
                            "description",
                            "duration",
                            "views",
                            "ownerId",
                            "ownerDetails",
                            "createdAt",
                        )
                    ),
                ],
            ),
            Project({"history": True}, keep_id=False),
        ],
    )


def channel_profile(username: str, viewer_id: Optional[str] = None) -> Pipeline:
    username = InputValidator.validate_username(username)

    def is_subscribed(document: Dict[str, Any]) -> bool:
        if viewer_id is None:
            return False
        return any(s.get("subscriberId") == viewer_id for s in document.get("subscribers") or [])

    return Pipeline(
        "users",
        [
            Match(Eq("username", username)),
            Lookup("subscriptions", "id", "subscribers", foreign_field="channelId"),
            Lookup("subscriptions", "id", "subscribedTo", foreign_field="subscriberId"),
            AddFields(
                subscribersCount=size_of("subscribers"),
                channelsSubscribedToCount=size_of("subscribedTo"),
                isSubscribed=is_subscribed,
            ),
            Project(
                _keep(
                    "fullName",
                    "username",
                    "email",
                    "avatar",
                    "coverImage",
                    "subscribersCount",
                    "channelsSubscribedToCount",
                    "isSubscribed",
                    "createdAt",
                )
            ),
        ],
    )


def tweet_detail(tweet_id: str) -> Pipeline:
    tweet_id = InputValidator.validate_object_id(tweet_id, "tweet ID")
    return Pipeline(
        "tweets",
        [
            Match(Eq("id", tweet_id)),
            *owner_join(),
            Lookup("likes", "id", "likes", foreign_field="tweetId", pipeline=[Project({"tweetId": True})]),
            Project(
                {
                    **_keep("content", "ownerId", "ownerDetails", "createdAt", "updatedAt"),
                    "likesCount": size_of("likes"),
                }
            ),
        ],
    )
