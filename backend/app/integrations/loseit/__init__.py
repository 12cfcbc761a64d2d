"""
Lose It!数据集成模块
"""
from app.integrations.loseit.client import LoseItClient
from app.integrations.loseit.provider import LoseItProvider

__all__ = ["LoseItClient", "LoseItProvider"]
