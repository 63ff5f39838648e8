"""Progreso de desafíos a partir de registros de salud"""
from datetime import date, timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

import gamification
from database import transaction
from exceptions import ValidationError, StoreError
from gamification import (
    log_habit, list_challenges, rollover_challenge_periods, period_start_for,
    progress_percentage, join_challenge, local_today
)
from models import HealthLog, UserChallengeProgress

MONDAY = date(2024, 5, 6)


def _progress(db, user, challenge):
    return db.query(UserChallengeProgress).filter_by(user_id=user.id, challenge_id=challenge.id).one()


def test_partial_progress(db, user, make_challenge):
    challenge = make_challenge("water_glasses", 10)

    _, completed, xp = log_habit(db, user, "water", 3, "glasses", MONDAY)

    progress = _progress(db, user, challenge)
    assert completed == []
    assert xp == 0
    assert progress.current_value == 3
    assert progress.is_completed is False
    assert progress_percentage(progress.current_value, challenge.target_value) == 30.0


def test_completion_credits_xp_once(db, user, make_challenge):
    challenge = make_challenge("water_glasses", 10, points_reward=50)

    log_habit(db, user, "water", 3, "glasses", MONDAY)
    _, completed, xp = log_habit(db, user, "water", 8, "glasses", MONDAY)

    db.refresh(user)
    progress = _progress(db, user, challenge)
    assert completed == [challenge.id]
    assert xp == 50
    assert progress.current_value == 11
    assert progress.is_completed is True
    assert progress.completed_at is not None
    assert user.experience_points == 50

    _, completed, xp = log_habit(db, user, "water", 2, "glasses", MONDAY)

    db.refresh(user)
    progress = _progress(db, user, challenge)
    assert completed == []
    assert xp == 0
    assert progress.current_value == 11
    assert user.experience_points == 50
    assert db.query(HealthLog).filter_by(user_id=user.id).count() == 3


def test_logs_only_feed_matching_units(db, user, make_challenge):
    water = make_challenge("water_glasses", 8)
    sleep = make_challenge("sleep_hours", 8)

    log_habit(db, user, "sleep", 7.5, "hours", MONDAY)

    assert _progress(db, user, sleep).current_value == 7.5
    assert db.query(UserChallengeProgress).filter_by(challenge_id=water.id).count() == 0


def test_store_failure_on_completion_rolls_back_log_and_progress(db, user, make_challenge, monkeypatch):
    challenge = make_challenge("water_glasses", 10, points_reward=50)
    log_habit(db, user, "water", 3, "glasses", MONDAY)

    def failing_increment(db, user_id, **deltas):
        raise SQLAlchemyError("disco lleno")

    monkeypatch.setattr(gamification, "_increment", failing_increment)

    with pytest.raises(StoreError):
        log_habit(db, user, "water", 8, "glasses", MONDAY)

    db.refresh(user)
    progress = _progress(db, user, challenge)
    assert db.query(HealthLog).filter_by(user_id=user.id).count() == 1
    assert progress.current_value == 3
    assert progress.is_completed is False
    assert progress.completed_at is None
    assert user.experience_points == 0


def test_log_without_date_counts_for_today(db, user, make_challenge):
    challenge = make_challenge("water_glasses", 10)

    log, _, _ = log_habit(db, user, "water", 4, "glasses")

    assert log.logged_date == local_today()
    assert _progress(db, user, challenge).period_start == local_today()


def test_inactive_and_out_of_window_challenges_are_ignored(db, user, make_challenge):
    inactive = make_challenge("workout_minutes", 30, is_active=False)
    future = make_challenge("workout_minutes", 30, start_date=MONDAY + timedelta(days=10))
    past = make_challenge("workout_minutes", 30, end_date=MONDAY - timedelta(days=1))
    open_window = make_challenge("workout_minutes", 30,
                                 start_date=MONDAY - timedelta(days=1), end_date=MONDAY + timedelta(days=1))

    log_habit(db, user, "workout", 20, "minutes", MONDAY)

    ids = {p.challenge_id for p in db.query(UserChallengeProgress).filter_by(user_id=user.id)}
    assert ids == {open_window.id}
    assert inactive.id not in ids and future.id not in ids and past.id not in ids


def test_daily_challenge_resets_next_day(db, user, make_challenge):
    challenge = make_challenge("water_glasses", 8, points_reward=20)

    _, completed, _ = log_habit(db, user, "water", 8, "glasses", MONDAY)
    assert completed == [challenge.id]

    _, completed, xp = log_habit(db, user, "water", 3, "glasses", MONDAY + timedelta(days=1))

    progress = _progress(db, user, challenge)
    assert completed == []
    assert progress.current_value == 3
    assert progress.is_completed is False
    assert progress.completed_at is None
    assert progress.period_start == MONDAY + timedelta(days=1)

    _, completed, xp = log_habit(db, user, "water", 5, "glasses", MONDAY + timedelta(days=1))
    db.refresh(user)
    assert completed == [challenge.id]
    assert user.experience_points == 40


def test_log_for_closed_period_is_stored_but_not_counted(db, user, make_challenge):
    challenge = make_challenge("water_glasses", 8)

    log_habit(db, user, "water", 2, "glasses", MONDAY + timedelta(days=1))
    log, completed, _ = log_habit(db, user, "water", 6, "glasses", MONDAY)

    progress = _progress(db, user, challenge)
    assert log.id is not None
    assert completed == []
    assert progress.current_value == 2
    assert progress.period_start == MONDAY + timedelta(days=1)


def test_weekly_challenge_accumulates_until_next_monday(db, user, make_challenge):
    challenge = make_challenge("workout_minutes", 150, challenge_type="weekly", points_reward=100)

    log_habit(db, user, "workout", 60, "minutes", MONDAY)
    log_habit(db, user, "workout", 60, "minutes", MONDAY + timedelta(days=6))
    assert _progress(db, user, challenge).current_value == 120

    log_habit(db, user, "workout", 30, "minutes", MONDAY + timedelta(days=7))
    progress = _progress(db, user, challenge)
    assert progress.current_value == 30
    assert progress.period_start == MONDAY + timedelta(days=7)


def test_milestone_never_resets(db, user, make_challenge):
    challenge = make_challenge("workout_minutes", 1000, challenge_type="milestone")

    log_habit(db, user, "workout", 400, "minutes", date(2024, 1, 15))
    log_habit(db, user, "workout", 400, "minutes", date(2024, 6, 20))

    progress = _progress(db, user, challenge)
    assert progress.current_value == 800
    assert progress.period_start is None


def test_unknown_habit_type(db, user):
    with pytest.raises(ValidationError):
        log_habit(db, user, "steps", 1000, "steps", MONDAY)
    assert db.query(HealthLog).count() == 0


def test_negative_value_is_rejected(db, user):
    with pytest.raises(ValidationError):
        log_habit(db, user, "water", -1, "glasses", MONDAY)


def test_join_then_log(db, user, make_challenge):
    challenge = make_challenge("healthy_meals", 10, challenge_type="weekly")

    joined = join_challenge(db, user, challenge.id)
    again = join_challenge(db, user, challenge.id)
    assert joined.id == again.id

    log_habit(db, user, "nutrition", 2, "meals")
    assert _progress(db, user, challenge).current_value == 2


def test_list_challenges_hides_stale_progress(db, user, make_challenge):
    challenge = make_challenge("water_glasses", 8)
    log_habit(db, user, "water", 4, "glasses", MONDAY)

    same_day = {c["id"]: c for c in list_challenges(db, user, today=MONDAY)}
    next_day = {c["id"]: c for c in list_challenges(db, user, today=MONDAY + timedelta(days=1))}

    assert same_day[challenge.id]["current_value"] == 4
    assert same_day[challenge.id]["progress_percentage"] == 50.0
    assert next_day[challenge.id]["current_value"] == 0
    assert next_day[challenge.id]["progress_percentage"] == 0.0


def test_rollover_resets_expired_periods(db, user, make_challenge):
    daily = make_challenge("water_glasses", 8)
    monthly = make_challenge("water_glasses", 200, challenge_type="monthly")
    log_habit(db, user, "water", 8, "glasses", MONDAY)

    with transaction(db):
        reset = rollover_challenge_periods(db, MONDAY + timedelta(days=1))

    assert reset == 1
    daily_progress = _progress(db, user, daily)
    assert daily_progress.current_value == 0
    assert daily_progress.is_completed is False
    assert _progress(db, user, monthly).current_value == 8


@pytest.mark.parametrize("challenge_type,day,expected", [
    ("daily", date(2024, 5, 9), date(2024, 5, 9)),
    ("weekly", date(2024, 5, 9), date(2024, 5, 6)),
    ("weekly", date(2024, 5, 6), date(2024, 5, 6)),
    ("monthly", date(2024, 5, 31), date(2024, 5, 1)),
    ("milestone", date(2024, 5, 9), None),
])
def test_period_start_for(challenge_type, day, expected):
    assert period_start_for(challenge_type, day) == expected


def test_progress_percentage_bounds():
    assert progress_percentage(5, 0) == 0.0
    assert progress_percentage(15, 10) == 100.0
