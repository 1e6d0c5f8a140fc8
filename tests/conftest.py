import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-secret")

import uuid
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from db.database import Base, get_db
from auth.deps import get_current_user
from models.user import User
from models.plant import Plant
from models.watering_event import WateringEvent
from services.ai_service import MockPlantAI, get_plant_ai

# 時刻に依存するテストはこの時刻を now として渡す
NOW = datetime(2025, 6, 15, 12, 0, 0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


def make_user(db, email="grower@example.com"):
    user = User(user_id=uuid.uuid4(), email=email)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_plant(db, user, name="Monstera", frequency=7, watered_days_ago=None, now=NOW, room=None):
    """watered_days_ago を渡すと now からその日数前に1回水やりした状態で作る"""
    plant = Plant(
        user_id=user.user_id,
        name=name,
        watering_frequency_days=frequency,
        room_id=room.id if room is not None else None,
        created_at=now,
        updated_at=now,
    )
    db.add(plant)
    db.flush()
    if watered_days_ago is not None:
        db.add(WateringEvent(plant_id=plant.id, watered_at=now - timedelta(days=watered_days_ago)))
    db.commit()
    db.refresh(plant)
    return plant


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def other_user(db):
    return make_user(db, email="neighbour@example.com")


@pytest.fixture
def provider():
    return MockPlantAI(seed=42)


@pytest.fixture
def client(db, user, provider):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_plant_ai] = lambda: provider
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
