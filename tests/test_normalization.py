from datetime import date, datetime

import pytest

from statepulse.database.normalization import (
    congress_bill_id,
    first_text,
    is_enacted_action,
    jurisdiction_slug,
    normalize_state,
    openstates_display_id,
    parse_datetime,
    parse_since,
)
from statepulse.models.legislation import HistoryEvent, LegislativeRecord, detect_enacted_date


class TestParseDatetime:

    def test_date_only(self):
        assert parse_datetime("2025-03-04") == datetime(2025, 3, 4)

    def test_zulu_suffix(self):
        assert parse_datetime("2025-03-04T10:00:00Z") == datetime(2025, 3, 4, 10, 0)

    def test_offset_converted_to_utc(self):
        assert parse_datetime("2025-03-04T10:00:00-05:00") == datetime(2025, 3, 4, 15, 0)

    def test_date_object(self):
        assert parse_datetime(date(2024, 1, 2)) == datetime(2024, 1, 2)

    @pytest.mark.parametrize("value", [None, "", "not a date"])
    def test_unparseable_is_none(self, value):
        assert parse_datetime(value) is None

    def test_since_tolerates_trailing_z(self):
        assert parse_since("2026-01-01Z") == datetime(2026, 1, 1)
        assert parse_since(None) is None


class TestIdentifiers:

    def test_congress_bill_id(self):
        assert congress_bill_id(119, "HR", "1234") == "congress-bill-119-hr-1234"

    def test_openstates_display_id(self):
        assert (
            openstates_display_id("ocd-bill/0a1b2c3d-4e5f-6789-abcd-ef0123456789")
            == "ocd-bill_4e5f-6789-abcd-ef0123456789"
        )

    @pytest.mark.parametrize("value", [None, "", "HB 12", "ocd-person/abc-def"])
    def test_openstates_display_id_rejects_other_ids(self, value):
        assert openstates_display_id(value) is None

    def test_jurisdiction_slug(self):
        assert jurisdiction_slug("United States") == "united-states"


class TestStates:

    @pytest.mark.parametrize("value,expected", [
        ("Utah", "UT"),
        ("ut", "UT"),
        ("new york", "NY"),
        ("Narnia", None),
        (None, None),
    ])
    def test_normalize_state(self, value, expected):
        assert normalize_state(value) == expected


class TestActions:

    @pytest.mark.parametrize("text", [
        "Became Public Law No: 118-5.",
        "Signed by Governor",
        "Approved by the Governor. Chaptered by Secretary of State",
    ])
    def test_enacted_actions(self, text):
        assert is_enacted_action(text)

    @pytest.mark.parametrize("text", ["Referred to Committee on Judiciary", "", None])
    def test_other_actions(self, text):
        assert not is_enacted_action(text)

    def test_first_text(self):
        assert first_text([None, "  ", " Title "]) == "Title"
        assert first_text([]) is None

    def test_detect_enacted_date_uses_latest_match(self):
        history = [
            HistoryEvent(date=datetime(2025, 1, 5), action_text="Introduced"),
            HistoryEvent(date=datetime(2025, 6, 1), action_text="Signed by Governor"),
            HistoryEvent(date=datetime(2025, 3, 1), action_text="Passed Senate"),
        ]
        assert detect_enacted_date(history) == datetime(2025, 6, 1)

    def test_derive_action_fields(self):
        record = LegislativeRecord(
            id="ocd-bill_x",
            identifier="SB 1",
            jurisdiction_name="Utah",
            history=[
                HistoryEvent(date=datetime(2025, 2, 1), action_text="Passed House"),
                HistoryEvent(date=datetime(2025, 1, 10), action_text="Introduced"),
            ],
        ).derive_action_fields()

        assert record.first_action_at == datetime(2025, 1, 10)
        assert record.latest_action_at == datetime(2025, 2, 1)
        assert record.latest_action_description == "Passed House"
        assert record.status_text == "Passed House"
        assert record.enacted_at is None
