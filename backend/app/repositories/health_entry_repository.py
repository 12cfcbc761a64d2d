"""
每日健康数据存储（SQLAlchemy实现）
"""
from datetime import date
from typing import Optional
import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import NotFoundError
from app.integrations.base import ExternalHealthRecord
from app.models.health_entry import HealthEntry
from app.repositories.base import HealthRecordStore
from app.utils.datetime_helper import utc_now

# 从外部数据复制到HealthEntry的字段
METRIC_FIELDS = (
    "steps",
    "weight",
    "calories_burned",
    "exercise_minutes",
    "sleep_minutes",
    "heart_rate",
    "distance",
    "active_minutes",
    "resting_heart_rate",
)


class HealthEntryRepository(HealthRecordStore):
    """每日健康数据存储"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def find_by_user_and_date(self, user_id: uuid.UUID, day: date) -> Optional[HealthEntry]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(HealthEntry).where(
                    HealthEntry.user_id == user_id,
                    HealthEntry.date == day,
                )
            )
            return result.scalar_one_or_none()

    async def create(
        self, user_id: uuid.UUID, record: ExternalHealthRecord, source: str
    ) -> HealthEntry:
        now = utc_now()
        entry = HealthEntry(
            id=uuid.uuid4(),
            user_id=user_id,
            date=record.date,
            source=source,
            raw_json=record.raw_data,
            created_at=now,
            updated_at=now,
            **{field: getattr(record, field) for field in METRIC_FIELDS},
        )
        async with self.session_factory() as db:
            db.add(entry)
            await db.commit()
        return entry

    async def replace(
        self, entry_id: uuid.UUID, record: ExternalHealthRecord, source: str
    ) -> HealthEntry:
        async with self.session_factory() as db:
            entry = await db.get(HealthEntry, entry_id)
            if entry is None:
                raise NotFoundError("健康数据", entry_id)

            # 整体覆盖：外部数据缺失的字段同样置空
            for field in METRIC_FIELDS:
                setattr(entry, field, getattr(record, field))
            entry.source = source
            entry.raw_json = record.raw_data
            entry.updated_at = utc_now()

            await db.commit()
            return entry
