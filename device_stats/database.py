import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from device_stats.config import DATABASE_URL

logger = logging.getLogger(__name__)


def build_engine(url: str = DATABASE_URL):
    # 로컬 SQLite 파일: 트래커 스레드들이 같은 DB를 쓰므로 스레드 검사 해제
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})

    # 서버 DB(MySQL 등): 유휴 연결은 재사용 전에 확인하고 오래된 연결은 교체
    # 버킷 하나마다 커밋하므로 동시 보고가 많으면 풀 여유분을 넉넉히 둠
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_size=10,
        max_overflow=20,
    )


engine = build_engine()

# UsageTracker가 호출마다 새 세션을 여는 데 사용
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# daily_stats 테이블 모델의 기반
Base = declarative_base()


def init_db(bind=None):
    # 모델 모듈을 불러와야 daily_stats가 metadata에 등록됨
    import device_stats.models  # noqa: F401

    logger.info("Creating DB tables...")
    Base.metadata.create_all(bind=bind or engine)
    logger.info("DB table creation completed.")
