"""Tests for the stats ingestion pipeline and growth history.

Covers validation before persistence, idempotent resubmission, replay of
later matches after an earlier one changes, and the append-only log.
"""
import threading
from datetime import date

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from squadtrack.core.context import RequestContext
from squadtrack.core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from squadtrack.models import (
    Base, ImmutableSnapshotError, Match, MatchStatRecord, Player, PlayerAttributeSnapshot, RATING_FIELDS, Season,
)
from squadtrack.services.attribute_engine import calculate_attribute_updates
from squadtrack.services.match_service import MatchService
from squadtrack.services.stats_service import StatsService, parse_raw_stats

STRONG = {"minutes_played": 90, "goals": 2, "assists": 1, "coach_rating": 85}
QUIET = {"minutes_played": 90, "coach_rating": 50}


class TestParseRawStats:

    def test_defaults(self):
        stats = parse_raw_stats({})
        assert stats.minutes_played == 0
        assert stats.coach_rating == 50
        assert stats.feedback is None

    @pytest.mark.parametrize("payload, field", [
        ({"minutes_played": 121}, "minutes_played"),
        ({"goals": -1}, "goals"),
        ({"coach_rating": 101}, "coach_rating"),
        ({"tackles": "many"}, "tackles"),
        ({"tackles": "3"}, "tackles"),
        ({"goals": True}, "goals"),
        ({"assists": 2.5}, "assists"),
        ({"assists": 2.0}, "assists"),
        ({"feedback": 5}, "feedback"),
        ({"yellow_cards": 1}, "yellow_cards"),
    ])
    def test_rejects_bad_field(self, payload, field):
        """Should name the offending field in the error."""
        with pytest.raises(ValidationError) as exc_info:
            parse_raw_stats(payload)
        assert field in [e["field"] for e in exc_info.value.details["errors"]]


class TestSubmitMatchStats:

    # First submission
    # ─────────────────────────────────────────────────────────────

    def test_creates_record_and_snapshots(self, db_session, match, player):
        result = StatsService(db_session).submit_match_stats(player.id, match.id, STRONG)

        assert result.created is True
        assert result.previous_attributes == {name: 50 for name in RATING_FIELDS}
        assert result.new_attributes == calculate_attribute_updates(result.previous_attributes, STRONG)
        assert result.growth_delta["coach_grade"] == 7

        db_session.refresh(player)
        assert player.attributes() == result.new_attributes

        # initial snapshot plus one for the match
        snapshots = db_session.query(PlayerAttributeSnapshot).all()
        assert len(snapshots) == 2
        initial = [s for s in snapshots if s.match_id is None][0]
        assert initial.attributes() == {name: 50 for name in RATING_FIELDS}

    def test_invalid_stats_persist_nothing(self, db_session, match, player):
        with pytest.raises(ValidationError):
            StatsService(db_session).submit_match_stats(player.id, match.id, {"minutes_played": 200})

        assert db_session.query(MatchStatRecord).count() == 0
        assert db_session.query(PlayerAttributeSnapshot).count() == 0

    def test_unknown_match_or_player(self, db_session, match, player):
        service = StatsService(db_session)
        with pytest.raises(NotFoundError):
            service.submit_match_stats(player.id, "missing", QUIET)
        with pytest.raises(NotFoundError):
            service.submit_match_stats("missing", match.id, QUIET)

    def test_player_from_other_team(self, db_session, match, make_player):
        outsider = make_player("Visiting Player", "CM", team_id="team-rivals-fc")
        with pytest.raises(ValidationError):
            StatsService(db_session).submit_match_stats(outsider.id, match.id, QUIET)

    def test_foreign_team_context(self, db_session, match, player):
        ctx = RequestContext(active_team_id="team-rivals-fc")
        with pytest.raises(AccessDeniedError):
            StatsService(db_session).submit_match_stats(player.id, match.id, QUIET, ctx=ctx)

    # Resubmission
    # ─────────────────────────────────────────────────────────────

    def test_identical_resubmission_is_idempotent(self, db_session, match, player):
        """Should produce the same ratings however often identical stats are resubmitted."""
        service = StatsService(db_session)
        first = service.submit_match_stats(player.id, match.id, STRONG)
        second = service.submit_match_stats(player.id, match.id, STRONG)
        third = service.submit_match_stats(player.id, match.id, STRONG)

        assert second.created is False
        assert first.new_attributes == second.new_attributes == third.new_attributes
        assert first.previous_attributes == third.previous_attributes
        assert db_session.query(MatchStatRecord).count() == 1

        db_session.refresh(player)
        assert player.attributes() == first.new_attributes

        revisions = service.snapshots.find_for_match(player.id, match.id)
        assert [s.revision for s in revisions] == [1, 2, 3]

    def test_changed_resubmission_replaces_effect(self, db_session, match, player):
        """Should compute from the match baseline, not on top of the previous submission."""
        service = StatsService(db_session)
        service.submit_match_stats(player.id, match.id, STRONG)
        corrected = service.submit_match_stats(player.id, match.id, QUIET)

        assert corrected.previous_attributes == {name: 50 for name in RATING_FIELDS}
        assert corrected.new_attributes == calculate_attribute_updates(corrected.previous_attributes, QUIET)

        record = service.get_match_stats(player.id, match.id)
        assert record.goals == 0

    def test_feedback_kept_when_omitted(self, db_session, match, player):
        service = StatsService(db_session)
        service.submit_match_stats(player.id, match.id, dict(STRONG, feedback="Great movement."))
        service.submit_match_stats(player.id, match.id, STRONG)

        assert service.get_match_stats(player.id, match.id).feedback == "Great movement."

    # Chronological chain
    # ─────────────────────────────────────────────────────────────

    def test_earlier_match_replays_later_ones(self, db_session, make_match, player):
        """Should recompute later matches when an earlier match is submitted afterwards."""
        march = make_match(date(2025, 3, 1), "Arsenal")
        april = make_match(date(2025, 4, 1), "Chelsea")
        service = StatsService(db_session)

        service.submit_match_stats(player.id, april.id, QUIET)
        result = service.submit_match_stats(player.id, march.id, STRONG)

        assert result.recalculated_match_ids == [april.id]
        expected_march = calculate_attribute_updates({name: 50 for name in RATING_FIELDS}, STRONG)
        expected_april = calculate_attribute_updates(expected_march, QUIET)

        db_session.refresh(player)
        assert player.attributes() == expected_april

        history = service.effective_history(player.id)
        assert [s.match_id for s in history] == [march.id, april.id]
        assert history[1].attributes() == expected_april

    def test_current_follows_latest_match_not_latest_submission(self, db_session, make_match, player):
        march = make_match(date(2025, 3, 1), "Arsenal")
        april = make_match(date(2025, 4, 1), "Chelsea")
        service = StatsService(db_session)

        service.submit_match_stats(player.id, march.id, QUIET)
        april_result = service.submit_match_stats(player.id, april.id, STRONG)
        service.submit_match_stats(player.id, march.id, QUIET)

        db_session.refresh(player)
        assert player.attributes() == april_result.new_attributes

    def test_match_date_change_reorders_chain(self, db_session, make_match, player):
        march = make_match(date(2025, 3, 1), "Arsenal")
        april = make_match(date(2025, 4, 1), "Chelsea")
        service = StatsService(db_session)
        service.submit_match_stats(player.id, march.id, STRONG)
        service.submit_match_stats(player.id, april.id, QUIET)

        MatchService(db_session).update_match(march.id, match_date=date(2025, 5, 1))

        history = service.effective_history(player.id)
        assert [s.match_id for s in history] == [april.id, march.id]

        # April now starts from the pre-tracking ratings and March builds on April
        april_attrs = calculate_attribute_updates({name: 50 for name in RATING_FIELDS}, QUIET)
        assert history[0].attributes() == april_attrs
        assert history[1].attributes() == calculate_attribute_updates(april_attrs, STRONG)
        assert history[1].match_date == date(2025, 5, 1)

        db_session.refresh(player)
        assert player.attributes() == history[-1].attributes()

    def test_rescheduling_without_reorder_appends_nothing(self, db_session, make_match, player):
        """Should leave the log untouched when only the score changes."""
        march = make_match(date(2025, 3, 1), "Arsenal")
        StatsService(db_session).submit_match_stats(player.id, march.id, STRONG)
        before = db_session.query(PlayerAttributeSnapshot).count()

        MatchService(db_session).update_match(march.id, team_score=3)

        assert db_session.query(PlayerAttributeSnapshot).count() == before


class TestConcurrentSubmission:

    @pytest.fixture
    def file_sessions(self, tmp_path):
        """Session factory over a file database so each thread gets its own connection."""
        engine = create_engine(
            f"sqlite:///{tmp_path / 'squadtrack.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )

        @event.listens_for(engine, "connect")
        def _foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        Base.metadata.create_all(bind=engine)
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
        engine.dispose()

    @pytest.fixture
    def fixture_ids(self, file_sessions):
        session = file_sessions()
        season = Season(
            team_id="team-harbour-fc",
            name="Spring 2025",
            start_date=date(2025, 2, 1),
            end_date=date(2025, 8, 1),
            is_active=True,
        )
        session.add(season)
        session.flush()
        match = Match(
            team_id="team-harbour-fc", season_id=season.id, opponent="Arsenal",
            match_date=date(2025, 3, 1), team_score=2, opponent_score=1,
        )
        player = Player(team_id="team-harbour-fc", name="Marcus Reid", position="ST")
        session.add_all([match, player])
        session.commit()
        ids = (player.id, match.id)
        session.close()
        return ids

    def test_same_pair_from_two_threads(self, file_sessions, fixture_ids):
        """Should serialize both submissions into one record and two match snapshots."""
        player_id, match_id = fixture_ids
        barrier = threading.Barrier(2)
        results, errors = [], []

        def submit(payload):
            session = file_sessions()
            try:
                barrier.wait()
                results.append(StatsService(session).submit_match_stats(player_id, match_id, payload))
            except Exception as e:
                errors.append(e)
            finally:
                session.close()

        threads = [threading.Thread(target=submit, args=(payload,)) for payload in (STRONG, QUIET)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert sorted(r.created for r in results) == [False, True]

        check = file_sessions()
        try:
            assert check.query(MatchStatRecord).count() == 1
            revisions = sorted(
                s.revision for s in check.query(PlayerAttributeSnapshot).filter(
                    PlayerAttributeSnapshot.match_id == match_id
                )
            )
            assert revisions == [1, 2]
        finally:
            check.close()

    def test_insert_race_becomes_update(self, db_session, match, player, monkeypatch):
        """Should retry as an update when the record appears between lookup and insert."""
        service = StatsService(db_session)
        service.submit_match_stats(player.id, match.id, STRONG)

        real_find_for = service.stats.find_for
        lookups = []

        def stale_find_for(player_id, match_id):
            lookups.append(match_id)
            # First lookup misses the row the other writer already committed
            return None if len(lookups) == 1 else real_find_for(player_id, match_id)

        monkeypatch.setattr(service.stats, "find_for", stale_find_for)

        result = service.submit_match_stats(player.id, match.id, QUIET)

        assert len(lookups) == 2
        assert result.created is False
        assert result.new_attributes == calculate_attribute_updates(result.previous_attributes, QUIET)
        records = db_session.query(MatchStatRecord).all()
        assert len(records) == 1
        assert records[0].coach_rating == 50
        revisions = sorted(
            s.revision for s in db_session.query(PlayerAttributeSnapshot).filter(
                PlayerAttributeSnapshot.match_id == match.id
            )
        )
        assert revisions == [1, 2]


class TestGrowthHistory:

    def test_no_matches(self, db_session, player):
        growth = StatsService(db_session).get_growth_history(player.id)

        assert growth.history == []
        assert growth.snapshot_count == 0
        assert growth.current_attributes == {name: 50 for name in RATING_FIELDS}

    def test_unknown_player(self, db_session):
        with pytest.raises(NotFoundError):
            StatsService(db_session).get_growth_history("missing")

    def test_history_survives_match_deletion(self, db_session, make_match, player):
        march = make_match(date(2025, 3, 1), "Arsenal")
        service = StatsService(db_session)
        service.submit_match_stats(player.id, march.id, STRONG)

        MatchService(db_session).delete_match(march.id)

        history = service.get_growth_history(player.id).history
        assert len(history) == 1
        assert history[0].opponent == "Arsenal"
        assert history[0].match_date == date(2025, 3, 1)


class TestSnapshotImmutability:

    def test_update_rejected(self, db_session, match, player):
        StatsService(db_session).submit_match_stats(player.id, match.id, STRONG)
        snapshot = db_session.query(PlayerAttributeSnapshot).filter(
            PlayerAttributeSnapshot.match_id == match.id
        ).one()

        snapshot.shooting = 99
        with pytest.raises(ImmutableSnapshotError):
            db_session.flush()
        db_session.rollback()

    def test_delete_rejected(self, db_session, match, player):
        StatsService(db_session).submit_match_stats(player.id, match.id, STRONG)
        snapshot = db_session.query(PlayerAttributeSnapshot).first()

        db_session.delete(snapshot)
        with pytest.raises(ImmutableSnapshotError):
            db_session.flush()
        db_session.rollback()
