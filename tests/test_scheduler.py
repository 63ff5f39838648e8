"""Mantenimiento nocturno"""
from datetime import date, timedelta

import config
import gamification
from gamification import log_habit, complete_focus_session, local_today
from models import UserChallengeProgress
from scheduler import run_nightly_maintenance, create_scheduler


def _progress(db, challenge):
    return db.query(UserChallengeProgress).filter_by(challenge_id=challenge.id).one()


def test_nightly_maintenance(db, user, make_challenge):
    today = date(2024, 5, 8)
    challenge = make_challenge("water_glasses", 8)
    log_habit(db, user, "water", 5, "glasses", today - timedelta(days=1))
    user.current_streak = 5
    user.last_activity_date = today - timedelta(days=4)
    db.commit()

    result = run_nightly_maintenance(db, today)

    db.refresh(user)
    progress = _progress(db, challenge)
    assert result == {"challenges_reset": 1, "streaks_broken": 1}
    assert progress.current_value == 0
    assert progress.period_start == today
    assert user.current_streak == 0


def test_local_today_follows_configured_timezone(monkeypatch):
    monkeypatch.setattr(config, "TIMEZONE", "Pacific/Kiritimati")  # UTC+14
    east = local_today()
    monkeypatch.setattr(config, "TIMEZONE", "Etc/GMT+12")  # UTC-12
    west = local_today()

    assert (east - west).days in (1, 2)


def test_logs_after_rollover_keep_accumulating(db, user, make_challenge, monkeypatch):
    monkeypatch.setattr(config, "TIMEZONE", "Asia/Tokyo")
    challenge = make_challenge("water_glasses", 20)

    log_habit(db, user, "water", 3, "glasses")
    run_nightly_maintenance(db, local_today())
    _, completed, _ = log_habit(db, user, "water", 8, "glasses")

    progress = _progress(db, challenge)
    assert completed == []
    assert progress.current_value == 11
    assert progress.period_start == local_today()


def test_streak_survives_nightly_job_on_consecutive_days(db, user, make_focus_session, monkeypatch):
    today = date(2024, 5, 8)
    monkeypatch.setattr(gamification, "local_today", lambda: today)
    user.current_streak = 5
    user.longest_streak = 5
    user.last_activity_date = today - timedelta(days=1)
    db.commit()

    result = run_nightly_maintenance(db, gamification.local_today())
    session = make_focus_session(user)
    complete_focus_session(db, user, session.id, actual_duration=25)

    db.refresh(user)
    assert result["streaks_broken"] == 0
    assert user.current_streak == 6
    assert user.longest_streak == 6
    assert user.last_activity_date == today


def test_scheduler_has_nightly_job():
    scheduler = create_scheduler()
    job = scheduler.get_job("nightly_maintenance")
    assert job is not None
    assert job.name == "Reinicio de desafíos y rachas"
    assert str(scheduler.timezone) == config.TIMEZONE
