"""
健康数据合理性校验
"""
from typing import List

from app.integrations.base.provider import ExternalHealthRecord

# 字段 -> (最小值, 最大值, 错误提示)
PLAUSIBLE_RANGES = {
    "steps": (0, 100_000, "步数必须在0到100,000之间"),
    "weight": (20, 500, "体重必须在20到500公斤之间"),
    "calories_burned": (0, 20_000, "消耗卡路里必须在0到20,000之间"),
    "exercise_minutes": (0, 1440, "运动时长必须在0到1,440分钟之间"),
    "sleep_minutes": (0, 1440, "睡眠时长必须在0到1,440分钟之间"),
    "active_minutes": (0, 1440, "活动时长必须在0到1,440分钟之间"),
    "heart_rate": (30, 250, "心率必须在30到250 bpm之间"),
    "resting_heart_rate": (30, 250, "静息心率必须在30到250 bpm之间"),
    "distance": (0, 1_000_000, "距离必须在0到1,000,000米之间"),
}


def validate_external_record(record: ExternalHealthRecord) -> List[str]:
    """
    校验单条外部健康数据

    Args:
        record: 通用格式的健康数据

    Returns:
        错误信息列表，为空表示校验通过
    """
    errors = []
    for field, (minimum, maximum, message) in PLAUSIBLE_RANGES.items():
        value = getattr(record, field)
        if value is not None and not (minimum <= value <= maximum):
            errors.append(f"{record.date.isoformat()} {message}（实际值: {value}）")
    return errors
