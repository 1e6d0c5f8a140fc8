# services/errors.py
"""
サービス層が投げる型付きエラー。
HTTP への変換は main.py の exception handler でまとめて行う。
"""
from typing import Dict, Optional


class ServiceError(Exception):
    """サービス層エラーの基底クラス"""

    message = "Service error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(ServiceError):
    """入力値エラー。fields に {フィールド名: メッセージ} を持つ"""

    message = "Validation failed"

    def __init__(self, fields: Dict[str, str], message: Optional[str] = None):
        super().__init__(message or next(iter(fields.values()), self.message))
        self.fields = fields


class NotFoundOrUnauthorized(ServiceError):
    # 「存在しない」と「他人のもの」は区別しない
    message = "Plant not found or unauthorized"


QUOTA_MESSAGES = {
    "plants": "Plant limit reached: {limit} max plants",
    "ai_generations": "AI generation limit reached: {limit} per month",
    "rooms": "Room limit reached: {limit} max rooms",
}


class QuotaExceeded(ServiceError):
    def __init__(self, kind: str, limit: int, used: int):
        self.kind = kind  # "plants" / "ai_generations" / "rooms"
        self.limit = limit
        self.used = used
        super().__init__(QUOTA_MESSAGES.get(kind, "Limit reached: {limit}").format(limit=limit))


class StoreUnavailable(ServiceError):
    message = "Storage backend is unavailable"


class AIProviderError(ServiceError):
    """植物識別 / ケア生成プロバイダの失敗"""

    message = "AI provider failed"
