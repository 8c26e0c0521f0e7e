import pytest

from core.exceptions import ValidationError
from core.models import Comment, Like, Playlist, Subscription, User, Video
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
    Sum,
    Unwind,
    execute,
    get_path,
    size_of,
    sum_of,
)


class TestGetPath:
    """Test dotted path access."""

    def test_nested_value(self):
        assert get_path({"a": {"b": {"c": 1}}}, "a.b.c") == 1

    def test_missing_returns_default(self):
        assert get_path({"a": {}}, "a.b", default="none") == "none"

    def test_non_dict_intermediate(self):
        assert get_path({"a": None}, "a.b") is None
        assert get_path(None, "a") is None


class TestPredicates:
    """Test in-memory predicate evaluation."""

    def test_eq(self):
        assert Eq("ownerId", "u1").matches({"ownerId": "u1"})
        assert not Eq("ownerId", "u1").matches({"ownerId": "u2"})

    def test_exists_rejects_null(self):
        assert Exists("videoId").matches({"videoId": "v1"})
        assert not Exists("videoId").matches({"videoId": None})
        assert not Exists("videoId").matches({})

    def test_icontains_any_field(self):
        predicate = IContains(("title", "description"), "CAT")
        assert predicate.matches({"title": "Funny cats", "description": ""})
        assert predicate.matches({"title": "Dogs", "description": "and a cat"})
        assert not predicate.matches({"title": "Dogs", "description": None})


class TestReshapingStages:
    """Test stages that do not touch the store."""

    async def test_match(self):
        documents = [{"id": "1", "n": 1}, {"id": "2", "n": 2}]
        assert await Match(Eq("n", 2)).apply(documents, None) == [{"id": "2", "n": 2}]

    async def test_first_takes_head_or_none(self):
        documents = [{"id": "1", "owner": [{"id": "a"}, {"id": "b"}]}, {"id": "2", "owner": []}]
        reshaped = await First("owner").apply(documents, None)
        assert reshaped[0]["owner"] == {"id": "a"}
        assert reshaped[1]["owner"] is None

    async def test_drop_empty(self):
        documents = [{"id": "1", "video": [{"id": "v"}]}, {"id": "2", "video": []}, {"id": "3"}]
        kept = await DropEmpty("video").apply(documents, None)
        assert [d["id"] for d in kept] == ["1"]

    async def test_add_fields_with_size_and_sum(self):
        documents = [{"id": "1", "likes": [1, 2, 3], "comments": [{"likes": [1]}, {"likes": [1, 2]}]}]
        enriched = await AddFields(
            likeCount=size_of("likes"), commentLikes=sum_of("comments", size_of("likes"))
        ).apply(documents, None)
        assert enriched[0]["likeCount"] == 3
        assert enriched[0]["commentLikes"] == 3

    async def test_size_of_missing_is_zero(self):
        enriched = await AddFields(count=size_of("items")).apply([{"id": "1"}], None)
        assert enriched[0]["count"] == 0

    async def test_project_sources(self):
        documents = [{"id": "1", "title": "T", "owner": {"username": "ana"}, "views": 3}]
        projected = await Project(
            {"title": True, "ownerName": "owner.username", "double": lambda d: d["views"] * 2}
        ).apply(documents, None)
        assert projected == [{"id": "1", "title": "T", "ownerName": "ana", "double": 6}]

    async def test_project_without_id(self):
        projected = await Project({"title": True}, keep_id=False).apply([{"id": "1", "title": "T"}], None)
        assert projected == [{"title": "T"}]

    async def test_unwind(self):
        documents = [{"id": "1", "items": ["a", "b"]}, {"id": "2", "items": []}]
        unwound = await Unwind("items").apply(documents, None)
        assert [(d["id"], d["items"]) for d in unwound] == [("1", "a"), ("1", "b")]

    async def test_unwind_preserve_empty(self):
        unwound = await Unwind("items", preserve_empty=True).apply([{"id": "2", "items": []}], None)
        assert unwound == [{"id": "2", "items": None}]

    async def test_group_first_value_and_sum(self):
        documents = [
            {"id": "c1", "subs": 2, "video": {"views": 5}},
            {"id": "c1", "subs": 2, "video": {"views": 10}},
            {"id": "c2", "subs": 0, "video": None},
        ]
        grouped = await Group(
            "id", subscribers=FirstValue("subs"), views=Sum("video.views")
        ).apply(documents, None)
        assert grouped == [
            {"id": "c1", "subscribers": 2, "views": 15},
            {"id": "c2", "subscribers": 0, "views": 0},
        ]


class TestSort:
    """Test ordering, tie-breaks and missing values."""

    async def test_descending_with_id_tie_break(self):
        documents = [
            {"id": "a", "views": 5},
            {"id": "c", "views": 5},
            {"id": "b", "views": 9},
        ]
        ordered = await Sort("views", "desc").apply(documents, None)
        assert [d["id"] for d in ordered] == ["b", "c", "a"]

    async def test_ascending(self):
        documents = [{"id": "a", "views": 5}, {"id": "b", "views": 1}]
        ordered = await Sort("views", "asc").apply(documents, None)
        assert [d["id"] for d in ordered] == ["b", "a"]

    async def test_missing_values_sort_last(self):
        documents = [{"id": "a"}, {"id": "b", "views": 1}, {"id": "c", "views": None}]
        for direction in ("asc", "desc"):
            ordered = await Sort("views", direction).apply(documents, None)
            assert ordered[0]["id"] == "b"


class TestPipelinePushdown:
    """Test splitting of leading Match stages."""

    def test_leading_matches_are_pushed_down(self):
        pipeline = Pipeline(
            "videos",
            [Match(Eq("ownerId", "u1")), Match(Eq("isPublished", True)), Sort(), Match(Eq("views", 1))],
        )
        predicates, remainder = pipeline.split_pushdown()
        assert predicates == [Eq("ownerId", "u1"), Eq("isPublished", True)]
        assert len(remainder) == 2

    def test_add_appends_stages(self):
        pipeline = Pipeline("videos").add(Sort(), First("x"))
        assert len(pipeline.stages) == 2


class TestPipelineExecution:
    """Test pipelines against the store."""

    @pytest.fixture
    async def channel(self, store):
        owner = await store.add(
            User(username="owner", email="owner@example.com", full_name="Owner", password_hash="x")
        )
        viewer = await store.add(
            User(username="viewer", email="viewer@example.com", full_name="Viewer", password_hash="x")
        )
        videos = []
        for title, views in (("First", 5), ("Second", 10)):
            videos.append(
                await store.add(
                    Video(
                        title=title,
                        description="d",
                        video_file={"url": "u", "storageKey": "k"},
                        thumbnail={"url": "u", "storageKey": "k"},
                        views=views,
                        owner_id=owner.id,
                    )
                )
            )
        return owner, viewer, videos

    async def test_lookup_attaches_owner(self, store, channel):
        owner, _, _ = channel
        documents = await execute(
            store,
            Pipeline(
                "videos",
                [
                    Match(Eq("ownerId", owner.id)),
                    Lookup("users", "ownerId", "ownerDetails", pipeline=[Project({"username": True})]),
                    First("ownerDetails"),
                    Sort("views", "desc"),
                ],
            ),
        )
        assert [d["title"] for d in documents] == ["Second", "First"]
        assert documents[0]["ownerDetails"] == {"id": owner.id, "username": "owner"}

    async def test_lookup_never_exposes_hidden_fields(self, store, channel):
        documents = await execute(
            store, Pipeline("videos", [Lookup("users", "ownerId", "ownerDetails"), First("ownerDetails")])
        )
        assert "passwordHash" not in documents[0]["ownerDetails"]
        assert "refreshToken" not in documents[0]["ownerDetails"]

    async def test_lookup_keeps_list_order(self, store, channel):
        owner, _, videos = channel
        await store.add(
            Playlist(name="p", description="d", owner_id=owner.id, videos=[videos[1].id, videos[0].id])
        )
        documents = await execute(
            store, Pipeline("playlists", [Lookup("videos", "videos", "items", pipeline=[Project({"title": True})])])
        )
        assert [item["title"] for item in documents[0]["items"]] == ["Second", "First"]

    async def test_lookup_tolerates_dangling_references(self, store, channel):
        owner, _, _ = channel
        await store.add(Comment(content="orphan", video_id="0" * 32, owner_id=owner.id))
        documents = await execute(
            store, Pipeline("comments", [Lookup("videos", "videoId", "video"), First("video")])
        )
        assert documents[0]["video"] is None

    async def test_nested_lookup_counts(self, store, channel):
        owner, viewer, videos = channel
        await store.add(Like(liked_by_id=viewer.id, video_id=videos[0].id))
        await store.add(Like(liked_by_id=owner.id, video_id=videos[0].id))
        await store.add(Subscription(subscriber_id=viewer.id, channel_id=owner.id))

        documents = await execute(
            store,
            Pipeline(
                "users",
                [
                    Match(Eq("id", owner.id)),
                    Lookup("subscriptions", "id", "subscribers", foreign_field="channelId"),
                    Lookup(
                        "videos",
                        "id",
                        "videos",
                        foreign_field="ownerId",
                        pipeline=[
                            Lookup("likes", "id", "likes", foreign_field="videoId"),
                            AddFields(likeCount=size_of("likes")),
                        ],
                    ),
                    AddFields(subscriberCount=size_of("subscribers"), likes=sum_of("videos", "likeCount")),
                ],
            ),
        )
        assert documents[0]["subscriberCount"] == 1
        assert documents[0]["likes"] == 2

    async def test_pushdown_search_is_case_insensitive(self, store, channel):
        documents = await execute(store, Pipeline("videos", [Match(IContains(("title",), "sec"))]))
        assert [d["title"] for d in documents] == ["Second"]

    async def test_unknown_field_is_validation_error(self, store, channel):
        with pytest.raises(ValidationError):
            await execute(store, Pipeline("videos", [Match(Eq("nope", 1))]))
