"""
第三方集成Schemas
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional
import uuid
from pydantic import BaseModel, Field, field_validator, model_validator

from app.integrations.base import ProviderName, IntegrationStatus
from app.utils.datetime_helper import ensure_utc


class SyncOptions(BaseModel):
    """同步选项"""

    start_date: Optional[datetime] = Field(None, description="开始时间（默认7天前）")
    end_date: Optional[datetime] = Field(None, description="结束时间（默认当前时间）")
    force_resync: bool = Field(False, description="覆盖已存在的当天数据")

    @field_validator("start_date", "end_date")
    @classmethod
    def to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        """无时区的时间按UTC处理"""
        return ensure_utc(value) if value else value

    @model_validator(mode="after")
    def check_range(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date不能晚于end_date")
        return self


class SyncResult(BaseModel):
    """单个集成的同步结果"""

    integration_id: uuid.UUID
    provider: ProviderName
    start_date: datetime
    end_date: datetime
    records_synced: int = 0
    records_skipped: int = 0
    errors: int = 0
    duration_ms: int = 0
    error_messages: Optional[List[str]] = None


class ConnectRequest(BaseModel):
    """发起连接请求"""

    provider: ProviderName


class CallbackRequest(BaseModel):
    """OAuth回调请求"""

    code: str = Field(..., min_length=1, description="授权码")
    state: str = Field(..., min_length=1, description="发起连接时返回的state")


class ConnectionInitiated(BaseModel):
    """发起连接响应"""

    auth_url: str
    state: str
    expires_at: datetime


class ConnectionCompleted(BaseModel):
    """连接完成响应"""

    id: uuid.UUID
    provider: ProviderName
    status: IntegrationStatus


class IntegrationSummary(BaseModel):
    """集成概要（不含令牌）"""

    id: uuid.UUID
    provider: ProviderName
    status: IntegrationStatus
    scope: Optional[str] = None
    expires_at: Optional[datetime] = None
    last_synced_at: Optional[datetime] = None
    sync_error_message: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DisconnectResponse(BaseModel):
    """断开连接响应"""

    success: bool
    message: str


class ProviderInfo(BaseModel):
    """Provider展示信息"""

    provider: ProviderName
    name: str
    description: str
    data_types: List[str]
    scopes: List[Dict[str, str]] = []
