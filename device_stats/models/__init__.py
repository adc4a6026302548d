# device_stats/models/__init__.py
from device_stats.models.daily_stat import DailyStat
