"""Tests for match lifecycle: date bounds on create and update, cascading delete."""
from datetime import date

import pytest

from squadtrack.core.exceptions import DateOutOfBoundsError, NotFoundError, ValidationError
from squadtrack.models import Lineup, Match, MatchStatRecord, PlayerAttributeSnapshot
from squadtrack.services.match_service import MatchService, match_result
from squadtrack.services.season_service import SeasonService
from squadtrack.services.stats_service import StatsService

TEAM_ID = "team-harbour-fc"  # matches the conftest fixtures
OTHER_TEAM_ID = "team-rivals-fc"


class TestCreateMatch:

    # Season bounds
    # ─────────────────────────────────────────────────────────────

    def test_rejects_day_before_season(self, db_session, season):
        """Should reject 2025-01-31 for a season starting 2025-02-01 and persist nothing."""
        with pytest.raises(DateOutOfBoundsError) as exc_info:
            MatchService(db_session).create_match(season.id, "Chelsea", date(2025, 1, 31))

        assert exc_info.value.details["valid_start"] == "2025-02-01"
        assert exc_info.value.details["valid_end"] == "2025-08-01"
        assert db_session.query(Match).count() == 0

    def test_accepts_first_day(self, db_session, season):
        match = MatchService(db_session).create_match(season.id, "Chelsea", date(2025, 2, 1), 3, 1)

        assert match.match_date == date(2025, 2, 1)
        assert match.team_id == TEAM_ID
        assert match_result(match) == "W"

    def test_accepts_iso_string(self, db_session, season):
        match = MatchService(db_session).create_match(season.id, "Fulham", "2025-04-12")
        assert match.match_date == date(2025, 4, 12)

    # Input validation
    # ─────────────────────────────────────────────────────────────

    def test_rejects_negative_score(self, db_session, season):
        with pytest.raises(ValidationError) as exc_info:
            MatchService(db_session).create_match(season.id, "Chelsea", date(2025, 3, 1), -1, 0)
        assert exc_info.value.details["errors"][0]["field"] == "team_score"

    def test_rejects_empty_opponent(self, db_session, season):
        with pytest.raises(ValidationError):
            MatchService(db_session).create_match(season.id, " ", date(2025, 3, 1))

    def test_rejects_unknown_season(self, db_session):
        with pytest.raises(NotFoundError):
            MatchService(db_session).create_match("missing", "Chelsea", date(2025, 3, 1))

    def test_rejects_team_not_owning_season(self, db_session, season):
        with pytest.raises(ValidationError):
            MatchService(db_session).create_match(season.id, "Chelsea", date(2025, 3, 1), team_id=OTHER_TEAM_ID)


class TestUpdateMatch:

    def test_rejects_date_moved_out_of_season(self, db_session, match):
        """Should re-check bounds on update and leave the match untouched."""
        with pytest.raises(DateOutOfBoundsError):
            MatchService(db_session).update_match(match.id, match_date=date(2025, 9, 1))

        db_session.refresh(match)
        assert match.match_date == date(2025, 3, 1)

    def test_moves_to_other_season_with_bounds_check(self, db_session, match):
        autumn = SeasonService(db_session).create_season(TEAM_ID, "Autumn", date(2025, 9, 1), date(2025, 12, 1))
        service = MatchService(db_session)

        # Old date is outside the new season
        with pytest.raises(DateOutOfBoundsError):
            service.update_match(match.id, season_id=autumn.id)

        updated = service.update_match(match.id, season_id=autumn.id, match_date="2025-10-04")
        assert updated.season_id == autumn.id
        assert updated.match_date == date(2025, 10, 4)

    def test_updates_score_and_opponent(self, db_session, match):
        updated = MatchService(db_session).update_match(match.id, opponent="Spurs", team_score=0, opponent_score=0)

        assert updated.opponent == "Spurs"
        assert match_result(updated) == "D"


class TestDeleteMatch:

    def test_cascades_but_keeps_snapshots(self, db_session, match, player):
        """Should remove the lineup and stat records while the growth log survives."""
        from squadtrack.services.lineup_service import LineupService

        LineupService(db_session).select_formation(match.id, "4-3-3")
        StatsService(db_session).submit_match_stats(player.id, match.id, {"minutes_played": 90, "goals": 1})
        snapshots_before = db_session.query(PlayerAttributeSnapshot).count()

        MatchService(db_session).delete_match(match.id)

        assert db_session.query(Match).count() == 0
        assert db_session.query(Lineup).count() == 0
        assert db_session.query(MatchStatRecord).count() == 0
        assert db_session.query(PlayerAttributeSnapshot).count() == snapshots_before

    def test_list_in_chronological_order(self, db_session, make_match):
        late = make_match(date(2025, 6, 1), "Wolves")
        early = make_match(date(2025, 2, 15), "Everton")

        assert [m.id for m in MatchService(db_session).list_matches(TEAM_ID)] == [early.id, late.id]
