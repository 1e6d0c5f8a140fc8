# db/database.py
import os
from dotenv import load_dotenv

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

load_dotenv()


def _normalize_url(url: str) -> str:
    # Supabase / Heroku の接続文字列は postgres:// で来ることがある
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set in environment variables")
DATABASE_URL = _normalize_url(DATABASE_URL)

# ローカル開発用の SQLite はスレッドをまたいで Session を使うので
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    echo=os.getenv("SQL_ECHO", "false").lower() == "true",
    pool_pre_ping=True,
    connect_args=connect_args,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """リクエストごとに Session を1つ。commit はサービス層で行う"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
