# routers/auth.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from db import store
from db.database import get_db
from auth.deps import get_current_user
from models.user import User

router = APIRouter(
    prefix="/auth",
    tags=["Auth"],
)


@router.get("/me")
def get_me(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """
    ログイン中のユーザーと、持っている植物 / 部屋の数
    （初回アクセスなら get_current_user でユーザーが作られる）
    """
    return {
        "user_id": str(user.user_id),
        "email": user.email,
        "created_at": user.created_at,
        "plant_count": store.count_plants_by_user(db, user.user_id),
        "room_count": store.count_rooms_by_user(db, user.user_id),
    }
