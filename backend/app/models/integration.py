"""
第三方集成数据模型
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from sqlalchemy import String, Text, TIMESTAMP, Enum, Uuid, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
import uuid

from app.database.base import Base
from app.integrations.base import ProviderName, IntegrationStatus
from app.utils.datetime_helper import utc_now


class Integration(Base):
    """用户与第三方数据源的连接（每个用户每个Provider一条）"""

    __tablename__ = "integrations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, comment="用户ID")
    provider: Mapped[ProviderName] = mapped_column(
        Enum(ProviderName, name="health_data_provider"), nullable=False, comment="数据源"
    )

    # OAuth令牌
    access_token: Mapped[str] = mapped_column(Text, nullable=False, comment="访问令牌")
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, comment="刷新令牌")
    expires_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, comment="令牌过期时间"
    )
    scope: Mapped[Optional[str]] = mapped_column(String(500), comment="授权范围")
    token_type: Mapped[Optional[str]] = mapped_column(String(50), default="Bearer")

    # 状态
    status: Mapped[IntegrationStatus] = mapped_column(
        Enum(IntegrationStatus, name="integration_status"),
        nullable=False,
        default=IntegrationStatus.ACTIVE,
        comment="集成状态",
    )
    last_synced_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), comment="最后同步时间"
    )
    sync_error_message: Mapped[Optional[str]] = mapped_column(Text, comment="最近一次同步错误")

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_integrations_user_provider"),
        Index("idx_integrations_user_status", "user_id", "status"),
    )

    def __repr__(self):
        return f"<Integration {self.provider} user_id={self.user_id} status={self.status}>"
