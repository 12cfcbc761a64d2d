"""
数据库模型
"""
from app.models.integration import Integration
from app.models.health_entry import HealthEntry, MANUAL_SOURCE

__all__ = [
    "Integration",
    "HealthEntry",
    "MANUAL_SOURCE",
]
