import logging
import os
import uuid
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.database import get_db
from models.user import User

logger = logging.getLogger(__name__)

security = HTTPBearer()

# .env から取得。Supabase の "JWT Secret" (API設定にあるもの) を設定してください
JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")
JWT_ALGORITHM = "HS256"  # Supabase Auth は HS256 固定


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
):
    token = credentials.credentials

    try:
        # Supabase の JWT には 'aud': 'authenticated' が入っているので aud は検証しない
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            options={"verify_aud": False}
        )

        sub = payload.get("sub")
        if not sub:
            raise JWTError("Missing subject claim")
        user_id = uuid.UUID(str(sub))

    except (JWTError, ValueError) as e:
        logger.warning("JWT verification failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid or expired JWT token: {str(e)}",
        )

    user = db.query(User).filter(User.user_id == user_id).first()

    # 初回ログイン時は自動作成
    if user is None:
        logger.info("registering new user %s", user_id)
        try:
            user = User(user_id=user_id, email=payload.get("email"))
            db.add(user)
            db.commit()
            db.refresh(user)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("could not create user %s: %s", user_id, e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Could not create user in database."
            )

    return user
