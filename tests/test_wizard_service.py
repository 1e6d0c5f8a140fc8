from datetime import datetime

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from db import store
from models.ai_feedback import AIFeedback
from models.plant import Plant
from services import quota_service, wizard_service
from services.errors import NotFoundOrUnauthorized, QuotaExceeded, StoreUnavailable, ValidationError
from conftest import make_plant

PLANT = {
    "name": "Monstera deliciosa",
    "watering_frequency_days": 7,
    "light_requirements": "Bright indirect light",
    "fertilizing_tips": ["Every 4-6 weeks"],
    "pruning_tips": [],
    "troubleshooting": ["Yellow leaves: too much water"],
}


def _used(db, user):
    return quota_service.check_ai_generation_limit(db, user.user_id).used


def _use_up_quota(db, user):
    for _ in range(5):
        quota_service.increment_ai_usage(db, user.user_id)


def test_saving_ai_plant_consumes_one_generation(db, user):
    plant, remaining = wizard_service.save_ai_plant(db, user.user_id, dict(PLANT))

    assert plant.created_with_ai is True
    assert plant.troubleshooting == "Yellow leaves: too much water"
    assert remaining == 4
    assert _used(db, user) == 1


def test_no_plant_and_no_increment_when_quota_is_used_up(db, user, monkeypatch):
    _use_up_quota(db, user)
    calls = []
    monkeypatch.setattr(quota_service, "increment_ai_usage", lambda *a, **k: calls.append(a))

    with pytest.raises(QuotaExceeded) as exc:
        wizard_service.save_ai_plant(db, user.user_id, dict(PLANT))

    assert (exc.value.limit, exc.value.used) == (5, 5)
    assert calls == []
    assert db.query(Plant).count() == 0


def test_invalid_plant_does_not_consume_quota(db, user):
    with pytest.raises(ValidationError):
        wizard_service.save_ai_plant(db, user.user_id, dict(PLANT, watering_frequency_days=0))

    assert _used(db, user) == 0
    assert db.query(Plant).count() == 0


def test_failed_increment_rolls_back_the_plant(db, user, monkeypatch):
    real_upsert = store.upsert_usage_record

    def flaky(db_, user_id, month_key, delta, limit=None):
        if delta:
            raise SQLAlchemyError("lock timeout")
        return real_upsert(db_, user_id, month_key, delta, limit)

    monkeypatch.setattr(store, "upsert_usage_record", flaky)

    with pytest.raises(StoreUnavailable):
        wizard_service.save_ai_plant(db, user.user_id, dict(PLANT))

    assert db.query(Plant).count() == 0
    assert _used(db, user) == 0


def test_plant_limit_blocks_the_wizard(db, user, monkeypatch):
    monkeypatch.setattr(quota_service, "MAX_PLANTS_PER_USER", 1)
    make_plant(db, user)

    with pytest.raises(QuotaExceeded) as exc:
        wizard_service.get_wizard_status(db, user.user_id)

    assert exc.value.kind == "plants"


def test_identify_checks_quota_before_calling_provider(db, user):
    class Provider:
        called = False

        def identify(self, image):
            Provider.called = True

        def generate_care(self, plant_name):
            Provider.called = True

    _use_up_quota(db, user)

    with pytest.raises(QuotaExceeded):
        wizard_service.identify_plant(db, user.user_id, b"jpeg", Provider())
    with pytest.raises(QuotaExceeded):
        wizard_service.generate_care(db, user.user_id, "Monstera", Provider())

    assert Provider.called is False


def test_identify_and_generate_do_not_consume_quota(db, user, provider):
    result = wizard_service.identify_plant(db, user.user_id, b"jpeg-bytes", provider)
    care = wizard_service.generate_care(db, user.user_id, result.scientific_name, provider)

    assert 0.85 <= result.confidence <= 1.0
    assert 1 <= care.watering_frequency_days <= 365
    assert _used(db, user) == 0


def test_wizard_status_reports_remaining(db, user):
    quota_service.increment_ai_usage(db, user.user_id)

    status = wizard_service.get_wizard_status(db, user.user_id)

    assert status.ai_remaining == 4
    assert status.plants.used == 0
    assert status.rooms == []


def test_feedback_is_recorded_for_own_plant(db, user, other_user):
    plant, _ = wizard_service.save_ai_plant(db, user.user_id, dict(PLANT))

    wizard_service.record_ai_feedback(db, user.user_id, plant.id, "thumbs_up", "  spot on ", {"care": "x"})

    feedback = db.query(AIFeedback).one()
    assert feedback.comment == "spot on"
    assert feedback.ai_response_snapshot == {"care": "x"}

    with pytest.raises(NotFoundOrUnauthorized):
        wizard_service.record_ai_feedback(db, other_user.user_id, plant.id, "thumbs_down")


def test_two_sessions_cannot_push_usage_past_the_limit(engine, db, user, monkeypatch):
    for _ in range(4):
        quota_service.increment_ai_usage(db, user.user_id)

    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    first, second = Session(), Session()
    try:
        # どちらも used=4 の時点でチェックを通っている
        stale = quota_service.require_ai_generation(second, user.user_id)
        assert stale.used == 4

        wizard_service.save_ai_plant(first, user.user_id, dict(PLANT))

        monkeypatch.setattr(quota_service, "require_ai_generation", lambda *a, **k: stale)
        with pytest.raises(QuotaExceeded) as exc:
            wizard_service.save_ai_plant(second, user.user_id, dict(PLANT, name="Pothos"))
    finally:
        first.close()
        second.close()

    assert (exc.value.limit, exc.value.used) == (5, 5)
    db.expire_all()
    assert _used(db, user) == 5
    assert [p.name for p in db.query(Plant).all()] == ["Monstera deliciosa"]


def test_save_checks_and_charges_the_same_month(db, user, monkeypatch):
    end_of_june = datetime(2025, 6, 30, 23, 59, 59)
    seen = []
    real_require = quota_service.require_ai_generation
    real_increment = quota_service.increment_ai_usage

    def require(db_, user_id, now=None):
        seen.append(now)
        return real_require(db_, user_id, now)

    def increment(db_, user_id, now=None, commit=True):
        seen.append(now)
        return real_increment(db_, user_id, now, commit=commit)

    monkeypatch.setattr(wizard_service, "utcnow", lambda: end_of_june)
    monkeypatch.setattr(quota_service, "require_ai_generation", require)
    monkeypatch.setattr(quota_service, "increment_ai_usage", increment)

    wizard_service.save_ai_plant(db, user.user_id, dict(PLANT))

    assert seen == [end_of_june, end_of_june]
    assert store.fetch_usage_record(db, user.user_id, "2025-06").ai_generations_this_month == 1
    assert store.fetch_usage_record(db, user.user_id, "2025-07") is None
