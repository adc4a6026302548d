# device_stats/config.py

import os

from dotenv import load_dotenv

load_dotenv()


# DB 접속 정보 (기본값: 로컬 SQLite)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./device_stats.db")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# 디바이스별 최근 전환 기록 보관 개수
SWITCH_LOG_SIZE = int(os.getenv("SWITCH_LOG_SIZE", "20"))

# 디바이스별 배터리 기록 보관 개수
BATTERY_HISTORY_SIZE = int(os.getenv("BATTERY_HISTORY_SIZE", "10"))

# 한 번의 분배가 앞으로 진행할 수 있는 최대 일수
MAX_DISTRIBUTION_DAYS = int(os.getenv("MAX_DISTRIBUTION_DAYS", "30"))

# 한 시간 버킷에 담을 수 있는 최대 분
BUCKET_CAPACITY_MINUTES = 60.0

HOURS_PER_DAY = 24

IDLE_APP_NAME = "idle"
UNKNOWN_APP_NAME = "Unknown"
