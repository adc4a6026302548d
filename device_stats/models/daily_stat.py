from sqlalchemy import Column, Integer, String, Date, DateTime, JSON, func, UniqueConstraint
from device_stats.database import Base


class DailyStat(Base):
    __tablename__ = "daily_stats"

    stat_id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    device_id = Column(String(255), nullable=False, index=True)

    # UTC 기준 날짜
    date = Column(Date, nullable=False)

    app_name = Column(String(255), nullable=False)

    # 24개 UTC 시간 버킷 (분 단위, 소수점 2자리)
    hourly_minutes = Column(JSON, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('device_id', 'date', 'app_name', name='uix_device_date_app'),
    )
