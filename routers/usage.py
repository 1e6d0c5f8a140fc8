# routers/usage.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from db.database import get_db
from auth.deps import get_current_user
from models.user import User
from schemas.usage import UsageSummary
from services.quota_service import get_usage_summary

router = APIRouter(prefix="/usage", tags=["Usage"])


@router.get("/", response_model=UsageSummary)
def get_usage(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """今月の AI 生成回数と植物数の使用状況"""
    return get_usage_summary(db, user.user_id)
