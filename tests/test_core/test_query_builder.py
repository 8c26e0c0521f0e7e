import pytest

from core import query_builder
from core.exceptions import ValidationError
from core.pipeline import Eq, IContains, Match, execute
from core.query_builder import ListOptions
from core.models import Playlist, Tweet

MISSING_ID = "f" * 32


class TestListOptions:
    """Test parsing of list options."""

    def test_defaults(self):
        options = ListOptions.parse("videos")

        assert options.page == 1
        assert options.page_size == 10
        assert options.sort_by == "createdAt"
        assert options.sort_type == "desc"

    def test_subscription_lists_default_to_subscribed_at(self):
        assert ListOptions.parse("subscribers").sort_by == "subscribedAt"
        assert ListOptions.parse("channels").sort_by == "subscribedAt"

    def test_unknown_sort_field(self):
        with pytest.raises(ValidationError) as exc_info:
            ListOptions.parse("videos", sort_by="password")
        assert exc_info.value.details["field"] == "sortBy"

    def test_invalid_sort_direction(self):
        with pytest.raises(ValidationError):
            ListOptions.parse("videos", sort_type="sideways")

    def test_sort_direction_case_insensitive(self):
        assert ListOptions.parse("videos", sort_type="ASC").sort_type == "asc"

    def test_sort_stage(self):
        stage = ListOptions.parse("videos", sort_by="views", sort_type="asc").sort_stage()
        assert stage.field_name == "views"
        assert stage.descending is False


class TestRecipeShapes:
    """Test pipeline construction without executing."""

    def test_malformed_id_rejected_before_querying(self):
        with pytest.raises(ValidationError):
            query_builder.video_comments("not-an-id", ListOptions.parse("comments"))

    def test_videos_default_filters(self):
        pipeline = query_builder.videos(ListOptions.parse("videos"), query="  cats ")
        predicates, _ = pipeline.split_pushdown()

        assert IContains(("title", "description"), "cats") in predicates
        assert Eq("isPublished", True) in predicates
        assert Eq("isPublic", True) in predicates

    def test_videos_without_visibility_filters(self):
        pipeline = query_builder.videos(
            ListOptions.parse("videos"), is_published=None, is_public=None
        )
        assert not isinstance(pipeline.stages[0], Match)


class TestRecipes:
    """Test recipes against the store."""

    async def test_video_comments_with_owner_cards(
        self, store, make_user, make_video, make_comment
    ):
        owner = await make_user("ana")
        viewer = await make_user("ben")
        video = await make_video(owner)
        await make_comment(viewer, video, "first")
        await make_comment(owner, video, "second")

        documents = await execute(
            store, query_builder.video_comments(video.id, ListOptions.parse("comments"))
        )

        assert [d["content"] for d in documents] == ["second", "first"]
        assert documents[1]["ownerDetails"]["username"] == "ben"
        assert set(documents[1]["ownerDetails"]) == {"id", "fullName", "username", "avatar"}

    async def test_video_comments_empty(self, store, make_user, make_video):
        video = await make_video(await make_user("ana"))
        documents = await execute(
            store, query_builder.video_comments(video.id, ListOptions.parse("comments"))
        )
        assert documents == []

    async def test_videos_search_and_visibility(self, store, make_user, make_video):
        owner = await make_user("ana")
        await make_video(owner, "Cats on skis")
        await make_video(owner, "Cat secrets", is_published=False)
        await make_video(owner, "Private cat", is_public=False)
        await make_video(owner, "Dogs")

        documents = await execute(
            store, query_builder.videos(ListOptions.parse("videos"), query="CAT")
        )

        assert [d["title"] for d in documents] == ["Cats on skis"]
        assert documents[0]["ownerDetails"]["username"] == "ana"

    async def test_videos_with_missing_owner_keep_null_owner(self, store, make_user, make_video):
        owner = await make_user("ana")
        await make_video(owner)
        await store.delete(owner)

        documents = await execute(store, query_builder.videos(ListOptions.parse("videos")))

        assert len(documents) == 1
        assert documents[0]["ownerDetails"] is None

    async def test_subscription_lists(self, store, make_user, make_subscription):
        channel = await make_user("chan")
        fans = [await make_user(name) for name in ("amy", "bob")]
        for fan in fans:
            await make_subscription(fan, channel)

        subscribers = await execute(
            store, query_builder.channel_subscribers(channel.id, ListOptions.parse("subscribers"))
        )
        channels = await execute(
            store, query_builder.subscribed_channels(fans[0].id, ListOptions.parse("channels"))
        )

        assert [d["username"] for d in subscribers] == ["bob", "amy"]
        assert set(subscribers[0]) == {"id", "fullName", "username", "avatar", "subscribedAt"}
        assert subscribers[0]["id"] == fans[1].id
        assert [d["username"] for d in channels] == ["chan"]

    async def test_liked_videos_skip_deleted_and_non_video_likes(
        self, store, make_user, make_video, make_like, make_comment
    ):
        owner = await make_user("ana")
        fan = await make_user("ben")
        kept = await make_video(owner, "Kept")
        gone = await make_video(owner, "Gone")
        comment = await make_comment(owner, kept)
        await make_like(fan, video_id=kept.id)
        await make_like(fan, video_id=gone.id)
        await make_like(fan, comment_id=comment.id)
        await store.delete(gone)

        documents = await execute(
            store, query_builder.liked_videos(fan.id, ListOptions.parse("likedVideos"))
        )

        assert len(documents) == 1
        liked = documents[0]
        assert liked["id"] == kept.id
        assert liked["title"] == "Kept"
        assert liked["videoOwnerDetails"]["username"] == "ana"
        assert liked["likedAt"] is not None

    async def test_user_playlists_video_count_ignores_deleted(
        self, store, make_user, make_video
    ):
        owner = await make_user("ana")
        first = await make_video(owner, "One")
        second = await make_video(owner, "Two")
        await store.add(
            Playlist(name="Mix", description="d", owner_id=owner.id, videos=[first.id, second.id])
        )
        await store.delete(second)

        documents = await execute(
            store, query_builder.user_playlists(owner.id, ListOptions.parse("playlists"))
        )

        assert documents[0]["name"] == "Mix"
        assert documents[0]["videoCount"] == 1

    async def test_playlist_detail(self, store, make_user, make_video):
        owner = await make_user("ana")
        first = await make_video(owner, "One")
        second = await make_video(owner, "Two")
        playlist = await store.add(
            Playlist(name="Mix", description="d", owner_id=owner.id, videos=[second.id, first.id])
        )

        documents = await execute(store, query_builder.playlist_detail(playlist.id))

        detail = documents[0]
        assert detail["videoCount"] == 2
        assert [v["title"] for v in detail["videos"]] == ["Two", "One"]
        assert detail["videos"][0]["videoOwnerDetails"] == {
            "id": owner.id,
            "fullName": "Ana",
            "username": "ana",
        }

    async def test_user_tweets_sorted_by_creation(self, store, make_user):
        owner = await make_user("ana")
        for text in ("one", "two", "three"):
            await store.add(Tweet(content=text, owner_id=owner.id))

        newest_first = await execute(store, query_builder.user_tweets(owner.id))
        oldest_first = await execute(store, query_builder.user_tweets(owner.id, "asc"))

        assert [d["content"] for d in newest_first] == ["three", "two", "one"]
        assert [d["content"] for d in oldest_first] == ["one", "two", "three"]

    async def test_channel_stats(
        self, store, make_user, make_video, make_like, make_comment, make_subscription
    ):
        owner = await make_user("ana")
        fans = [await make_user(name) for name in ("amy", "bob", "cid")]
        first = await make_video(owner, "One", views=5)
        await make_video(owner, "Two", views=10)
        await make_video(owner, "Draft", views=7, is_published=False)
        comment = await make_comment(fans[0], first)
        await make_like(fans[0], video_id=first.id)
        await make_like(fans[1], video_id=first.id)
        await make_like(fans[2], comment_id=comment.id)
        await make_subscription(fans[0], owner)

        documents = await execute(store, query_builder.channel_stats(owner.id))

        assert documents == [
            {"totalSubscribers": 1, "totalVideos": 2, "totalViews": 22, "totalLikes": 3}
        ]

    async def test_channel_stats_without_videos(self, store, make_user):
        owner = await make_user("ana")

        documents = await execute(store, query_builder.channel_stats(owner.id))

        assert documents == [
            {"totalSubscribers": 0, "totalVideos": 0, "totalViews": 0, "totalLikes": 0}
        ]

    async def test_watch_history_preserves_order(self, store, make_user, make_video):
        user = await make_user("ana")
        first = await make_video(user, "One")
        second = await make_video(user, "Two")
        await store.update(user, watch_history=[second.id, MISSING_ID, first.id])

        documents = await execute(store, query_builder.watch_history(user.id))

        assert [v["title"] for v in documents[0]["history"]] == ["Two", "One"]

    async def test_channel_profile(self, store, make_user, make_subscription):
        channel = await make_user("chan")
        fan = await make_user("fan")
        await make_subscription(fan, channel)

        as_fan = await execute(store, query_builder.channel_profile("chan", fan.id))
        anonymous = await execute(store, query_builder.channel_profile("CHAN"))

        assert as_fan[0]["subscribersCount"] == 1
        assert as_fan[0]["channelsSubscribedToCount"] == 0
        assert as_fan[0]["isSubscribed"] is True
        assert anonymous[0]["isSubscribed"] is False
        assert "passwordHash" not in as_fan[0]

    async def test_tweet_detail_counts_likes(self, store, make_user, make_like):
        owner = await make_user("ana")
        fan = await make_user("ben")
        tweet = await store.add(Tweet(content="hello", owner_id=owner.id))
        await make_like(fan, tweet_id=tweet.id)

        documents = await execute(store, query_builder.tweet_detail(tweet.id))

        assert documents[0]["likesCount"] == 1
        assert documents[0]["ownerDetails"]["username"] == "ana"
