"""
每日健康数据模型
"""
from __future__ import annotations

from datetime import datetime, date as date_type
from typing import Optional
from sqlalchemy import String, Integer, Float, Date, TIMESTAMP, JSON, Uuid, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
import uuid

from app.database.base import Base
from app.utils.datetime_helper import utc_now

# 手动录入的数据来源标识
MANUAL_SOURCE = "MANUAL"


class HealthEntry(Base):
    """用户单日健康数据（每个用户每天一条）"""

    __tablename__ = "health_entries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, comment="用户ID")
    date: Mapped[date_type] = mapped_column(Date, nullable=False, comment="日期")

    steps: Mapped[Optional[int]] = mapped_column(Integer, comment="步数")
    weight: Mapped[Optional[float]] = mapped_column(Float, comment="体重(kg)")
    calories_burned: Mapped[Optional[int]] = mapped_column(Integer, comment="消耗卡路里")
    exercise_minutes: Mapped[Optional[int]] = mapped_column(Integer, comment="运动时长(分钟)")
    sleep_minutes: Mapped[Optional[int]] = mapped_column(Integer, comment="睡眠时长(分钟)")
    heart_rate: Mapped[Optional[int]] = mapped_column(Integer, comment="心率(bpm)")
    distance: Mapped[Optional[float]] = mapped_column(Float, comment="距离(米)")
    active_minutes: Mapped[Optional[int]] = mapped_column(Integer, comment="活跃时长(分钟)")
    resting_heart_rate: Mapped[Optional[int]] = mapped_column(Integer, comment="静息心率(bpm)")

    source: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MANUAL_SOURCE, comment="数据来源（Provider或MANUAL）"
    )
    raw_json: Mapped[Optional[dict]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), comment="第三方原始数据"
    )

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_health_entries_user_date"),)

    def __repr__(self):
        return f"<HealthEntry {self.date} source={self.source}>"
