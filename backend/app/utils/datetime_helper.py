"""
日期时间辅助函数
"""
from datetime import datetime, date, timedelta, timezone
from typing import Callable, List

# 时钟: 返回当前时间（带时区的UTC时间），测试中可替换
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """获取当前UTC时间"""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """无时区的时间按UTC处理"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_unix(dt: datetime) -> int:
    """时间转Unix时间戳（秒）"""
    return int(ensure_utc(dt).timestamp())


def to_epoch_ms(dt: datetime) -> int:
    """时间转毫秒时间戳"""
    return int(ensure_utc(dt).timestamp() * 1000)


def from_epoch_ms(value: int) -> datetime:
    """毫秒时间戳转UTC时间"""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def format_date(dt) -> str:
    """格式化为 YYYY-MM-DD"""
    if isinstance(dt, datetime):
        dt = ensure_utc(dt).date()
    return dt.isoformat()


def date_range(start: datetime, end: datetime) -> List[date]:
    """生成起止时间之间（含两端）的所有日期"""
    current = ensure_utc(start).date()
    last = ensure_utc(end).date()
    days = []
    while current <= last:
        days.append(current)
        current += timedelta(days=1)
    return days
