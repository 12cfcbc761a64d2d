"""
Strava数据集成模块
"""
from app.integrations.strava.client import StravaClient
from app.integrations.strava.provider import StravaProvider

__all__ = ["StravaClient", "StravaProvider"]
