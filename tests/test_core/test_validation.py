import pytest

from core.exceptions import ValidationError
from core.validation import InputValidator, coerce_positive_int


class TestObjectIdValidation:
    """Test entity identifier validation."""

    def test_valid_id_is_normalized(self):
        value = "ABCDEF0123456789ABCDEF0123456789"
        assert InputValidator.validate_object_id(f" {value} ") == value.lower()

    @pytest.mark.parametrize("value", [None, "", "   ", 123])
    def test_missing_id(self, value):
        with pytest.raises(ValidationError) as exc_info:
            InputValidator.validate_object_id(value, "video ID")
        assert exc_info.value.message == "video ID is missing."

    @pytest.mark.parametrize("value", ["abc", "g" * 32, "a" * 33, "not-an-id"])
    def test_malformed_id(self, value):
        with pytest.raises(ValidationError) as exc_info:
            InputValidator.validate_object_id(value, "video ID")
        assert exc_info.value.message == "Invalid video ID."


class TestTextValidation:
    """Test free-text validation."""

    def test_require_text_trims(self):
        assert InputValidator.require_text("  hello  ", "content") == "hello"

    @pytest.mark.parametrize("value", [None, "", "   ", 5])
    def test_require_text_rejects_empty(self, value):
        with pytest.raises(ValidationError):
            InputValidator.require_text(value, "content")

    def test_require_text_max_length(self):
        with pytest.raises(ValidationError):
            InputValidator.require_text("x" * 281, "content", max_length=280)

    def test_optional_text(self):
        assert InputValidator.optional_text(None, "title") is None
        assert InputValidator.optional_text("   ", "title") is None
        assert InputValidator.optional_text(" New ", "title") == "New"


class TestAccountValidation:
    """Test username and email validation."""

    def test_email_lowercased(self):
        assert InputValidator.validate_email("Ana@Example.COM") == "ana@example.com"

    @pytest.mark.parametrize("value", ["invalid-email", "@example.com", "ana@", "ana@example"])
    def test_invalid_email(self, value):
        with pytest.raises(ValidationError):
            InputValidator.validate_email(value)

    def test_username_lowercased(self):
        assert InputValidator.validate_username("Ana_Smith") == "ana_smith"

    @pytest.mark.parametrize("value", ["ab", "a" * 31, "ana smith", "ana!"])
    def test_invalid_username(self, value):
        with pytest.raises(ValidationError):
            InputValidator.validate_username(value)


class TestOptionValidation:
    """Test sort, choice and flag parsing."""

    @pytest.mark.parametrize("value,expected", [(None, "desc"), ("", "desc"), ("asc", "asc"), (" DESC ", "desc")])
    def test_sort_direction(self, value, expected):
        assert InputValidator.validate_sort_direction(value) == expected

    def test_invalid_sort_direction(self):
        with pytest.raises(ValidationError):
            InputValidator.validate_sort_direction("up")

    def test_choice(self):
        assert InputValidator.validate_choice("views", ("views", "title"), "sortBy") == "views"
        with pytest.raises(ValidationError):
            InputValidator.validate_choice("likes", ("views", "title"), "sortBy")

    @pytest.mark.parametrize(
        "value,expected",
        [(None, None), (True, True), ("true", True), ("1", True), ("False", False), ("no", False)],
    )
    def test_parse_bool(self, value, expected):
        assert InputValidator.parse_bool(value, "isPublished") is expected

    def test_parse_bool_rejects_garbage(self):
        with pytest.raises(ValidationError):
            InputValidator.parse_bool("maybe", "isPublished")


class TestUploadValidation:
    """Test upload content type checks."""

    def test_matching_type(self):
        InputValidator.validate_upload("video/mp4", "video", "videoFile")

    @pytest.mark.parametrize("content_type", [None, "", "image/png", "application/octet-stream"])
    def test_wrong_type(self, content_type):
        with pytest.raises(ValidationError) as exc_info:
            InputValidator.validate_upload(content_type, "video", "videoFile")
        assert exc_info.value.details["field"] == "videoFile"


class TestCoercePositiveInt:
    """Test lenient integer coercion."""

    @pytest.mark.parametrize("value,expected", [("7", 7), (3, 3), ("0", 5), ("-1", 5), ("x", 5), (None, 5), (False, 5)])
    def test_coercion(self, value, expected):
        assert coerce_positive_int(value, 5) == expected
