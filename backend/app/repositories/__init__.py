"""
数据访问层
"""
from app.repositories.base import IntegrationStore, HealthRecordStore
from app.repositories.integration_repository import IntegrationRepository
from app.repositories.health_entry_repository import HealthEntryRepository

__all__ = [
    "IntegrationStore",
    "HealthRecordStore",
    "IntegrationRepository",
    "HealthEntryRepository",
]
