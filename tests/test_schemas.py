"""
Tests for slug generation and event/email validation
"""
import pytest

from errors import ValidationError
from schemas import EventDetails, normalize_email, slugify, validate_event


class TestSlugify:
    """slugify behaviour"""

    @pytest.mark.parametrize("title, expected", [
        ("My Talk", "my-talk"),
        ("  React Conf 2026  ", "react-conf-2026"),
        ("C++ & Rust -- Systems!!", "c-rust-systems"),
        ("---Already-Slugged---", "already-slugged"),
        ("Über Café", "ber-caf"),
        ("!!!", ""),
        ("", ""),
    ])
    def test_known_titles(self, title, expected):
        assert slugify(title) == expected

    @pytest.mark.parametrize("title", [
        "Hello, World", " -a- ", "A  B\tC\nD", "x--y", "@@@Title@@@", "2026 // Summit", "ÀÉÎ"
    ])
    def test_slug_shape(self, title):
        """Slugs are lowercase with no edge or doubled hyphens"""
        slug = slugify(title)
        assert slug == slug.lower()
        assert not slug.startswith("-")
        assert not slug.endswith("-")
        assert "--" not in slug

    def test_idempotent(self):
        assert slugify(slugify("Some Event Title")) == "some-event-title"


class TestValidateEvent:
    """Event validation and normalization"""

    def test_valid_record_is_normalized(self, event_record):
        record = dict(event_record, title="  My Talk  ", time="9:05", tags=[" python ", "web"])
        event = validate_event(record)
        assert event["title"] == "My Talk"
        assert event["time"] == "09:05"
        assert event["tags"] == ["python", "web"]
        assert event["date"] == "2026-05-15"

    @pytest.mark.parametrize("value", ["2026-02-28", " 2024-02-29 ", "2026-12-31"])
    def test_accepts_calendar_dates(self, event_record, value):
        assert validate_event(dict(event_record, date=value))["date"] == value.strip()

    @pytest.mark.parametrize("value", ["2026-02-30", "2026-13-01", "2025-02-29", "2026-00-10",
                                       "26-01-01", "2026/01/01", "tomorrow", ""])
    def test_rejects_bad_dates(self, event_record, value):
        with pytest.raises(ValidationError) as exc_info:
            validate_event(dict(event_record, date=value))
        assert "date" in exc_info.value.errors

    @pytest.mark.parametrize("value, expected", [("09:05", "09:05"), ("23:59", "23:59"),
                                                 ("0:00", "00:00"), ("7:30", "07:30")])
    def test_accepts_times(self, event_record, value, expected):
        assert validate_event(dict(event_record, time=value))["time"] == expected

    @pytest.mark.parametrize("value", ["24:00", "9:5", "12:60", "1200", "noon", ""])
    def test_rejects_bad_times(self, event_record, value):
        with pytest.raises(ValidationError) as exc_info:
            validate_event(dict(event_record, time=value))
        assert "time" in exc_info.value.errors

    @pytest.mark.parametrize("field", ["title", "description", "overview", "image", "venue",
                                       "location", "mode", "audience", "organizer"])
    def test_required_text_fields(self, event_record, field):
        with pytest.raises(ValidationError) as exc_info:
            validate_event(dict(event_record, **{field: "   "}))
        assert field in exc_info.value.errors

        record = dict(event_record)
        del record[field]
        with pytest.raises(ValidationError) as exc_info:
            validate_event(record)
        assert field in exc_info.value.errors

    @pytest.mark.parametrize("field", ["agenda", "tags"])
    @pytest.mark.parametrize("value", [[], ["ok", "  "], "python", None])
    def test_list_fields(self, event_record, field, value):
        with pytest.raises(ValidationError) as exc_info:
            validate_event(dict(event_record, **{field: value}))
        assert field in exc_info.value.errors

    def test_reports_every_bad_field(self, event_record):
        with pytest.raises(ValidationError) as exc_info:
            validate_event(dict(event_record, date="2026-13-01", time="24:00", tags=[]))
        assert set(exc_info.value.errors) == {"date", "time", "tags"}

    def test_details_model_does_not_need_image(self, event_record):
        record = dict(event_record)
        del record["image"]
        event = validate_event(record, model=EventDetails)
        assert "image" not in event

    def test_slug_is_kept_url_safe(self, event_record):
        assert validate_event(dict(event_record, slug=" Custom Slug "))["slug"] == "custom-slug"
        assert validate_event(dict(event_record, slug="!!!"))["slug"] is None


class TestNormalizeEmail:
    """Booking email checks"""

    def test_lowercases_and_trims(self):
        assert normalize_email("  Ada@Example.COM ") == "ada@example.com"

    def test_short_address(self):
        assert normalize_email("a@b.co") == "a@b.co"

    @pytest.mark.parametrize("value", ["not-an-email", "a@b", "a@@b.co", "@b.co", "a@", "a b@c.d", "", "   ", None])
    def test_rejects_malformed(self, value):
        with pytest.raises(ValidationError) as exc_info:
            normalize_email(value)
        assert "email" in exc_info.value.errors
