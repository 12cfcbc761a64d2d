"""
Fitbit数据集成模块
"""
from app.integrations.fitbit.client import FitbitClient
from app.integrations.fitbit.provider import FitbitProvider

__all__ = ["FitbitClient", "FitbitProvider"]
