# services/constants.py
# 互換性のため値は固定（変更する場合はフロントとも合わせること）

SECONDS_PER_DAY = 60 * 60 * 24

# -------------------------
# quota
# -------------------------
MAX_PLANTS_PER_USER = 1000
FREE_AI_GENERATIONS_PER_MONTH = 5
MAX_ROOMS_PER_USER = 50

# -------------------------
# plant / room
# -------------------------
MAX_PLANT_NAME_LENGTH = 100
MIN_WATERING_FREQUENCY_DAYS = 1
MAX_WATERING_FREQUENCY_DAYS = 365
DEFAULT_WATERING_FREQUENCY_DAYS = 3
MAX_ROOM_NAME_LENGTH = 50

# -------------------------
# watering / notifications
# -------------------------
DEFAULT_WATERING_HISTORY_LIMIT = 10
DEFAULT_PLANTS_DUE_SOON_THRESHOLD_DAYS = 2
DEFAULT_PLANTS_OVERDUE_THRESHOLD_DAYS = -1  # days_until_watering がこれ以下なら overdue
