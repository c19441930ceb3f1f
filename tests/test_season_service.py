"""Tests for season lifecycle: creation rules, overlap and guarded deletion."""
from datetime import date

import pytest

from squadtrack.core.context import RequestContext
from squadtrack.core.exceptions import (
    AccessDeniedError, NotFoundError, ReferenceConflictError, ValidationError,
)
from squadtrack.models import Season
from squadtrack.services.season_service import SeasonService

TEAM_ID = "team-harbour-fc"  # matches the conftest fixtures
OTHER_TEAM_ID = "team-rivals-fc"


class TestCreateSeason:

    def test_creates_season(self, db_session):
        """Should persist the season with calendar dates."""
        season = SeasonService(db_session).create_season(TEAM_ID, "  Autumn 2025 ", "2025-09-01", "2025-12-20")

        stored = db_session.query(Season).filter(Season.id == season.id).one()
        assert stored.name == "Autumn 2025"
        assert stored.start_date == date(2025, 9, 1)
        assert stored.end_date == date(2025, 12, 20)
        assert stored.is_active is True

    def test_rejects_end_before_start(self, db_session):
        with pytest.raises(ValidationError):
            SeasonService(db_session).create_season(TEAM_ID, "Backwards", date(2025, 8, 1), date(2025, 2, 1))
        assert db_session.query(Season).count() == 0

    def test_rejects_empty_name(self, db_session):
        with pytest.raises(ValidationError):
            SeasonService(db_session).create_season(TEAM_ID, "   ", date(2025, 2, 1), date(2025, 8, 1))

    def test_rejects_overlap_within_team(self, db_session, season):
        """Should reject a range sharing a day with another season of the same team."""
        with pytest.raises(ReferenceConflictError) as exc_info:
            SeasonService(db_session).create_season(TEAM_ID, "Summer", date(2025, 8, 1), date(2025, 9, 1))
        assert exc_info.value.details["season_id"] == season.id

    def test_allows_overlap_across_teams(self, db_session, season):
        """Should allow another team to use the same dates."""
        other = SeasonService(db_session).create_season(OTHER_TEAM_ID, "Spring", date(2025, 2, 1), date(2025, 8, 1))
        assert other.team_id == OTHER_TEAM_ID

    def test_rejects_foreign_team_context(self, db_session):
        """Should refuse to create a season for a team other than the active one."""
        ctx = RequestContext(active_team_id=OTHER_TEAM_ID)
        with pytest.raises(AccessDeniedError):
            SeasonService(db_session).create_season(TEAM_ID, "Spring", date(2025, 2, 1), date(2025, 8, 1), ctx=ctx)


class TestSeasonQueries:

    def test_list_most_recent_first(self, db_session, season):
        service = SeasonService(db_session)
        older = service.create_season(TEAM_ID, "Autumn 2024", date(2024, 9, 1), date(2024, 12, 20))

        assert [s.id for s in service.list_seasons(TEAM_ID)] == [season.id, older.id]

    def test_active_only_filter(self, db_session, season):
        service = SeasonService(db_session)
        service.set_active(season.id, False)

        assert service.list_seasons(TEAM_ID) == [season]
        assert service.list_seasons(TEAM_ID, active_only=True) == []

    def test_get_unknown_season(self, db_session):
        with pytest.raises(NotFoundError):
            SeasonService(db_session).get_season("missing")


class TestDeleteSeason:

    def test_deletes_empty_season(self, db_session, season):
        SeasonService(db_session).delete_season(season.id)
        assert db_session.query(Season).count() == 0

    def test_refuses_while_matches_exist(self, db_session, season, match):
        """Should keep the season while any match references it."""
        with pytest.raises(ReferenceConflictError) as exc_info:
            SeasonService(db_session).delete_season(season.id)

        assert exc_info.value.details["match_count"] == 1
        assert db_session.query(Season).count() == 1
