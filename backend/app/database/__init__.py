"""
数据库配置和会话管理
"""

from app.database.session import engine, AsyncSessionLocal
from app.database.base import Base

__all__ = ["engine", "AsyncSessionLocal", "Base"]
