"""
第三方健康数据源Provider抽象接口
"""
import enum
from abc import ABC, abstractmethod
from datetime import datetime, date
from typing import Any, Dict, List, Optional
from pydantic import BaseModel


class ProviderName(str, enum.Enum):
    """支持的第三方数据源（封闭集合）"""

    STRAVA = "STRAVA"
    FITBIT = "FITBIT"
    LOSE_IT = "LOSE_IT"


class IntegrationStatus(str, enum.Enum):
    """集成状态"""

    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"
    ERROR = "ERROR"


class OAuthCredentials(BaseModel):
    """OAuth凭证"""

    access_token: str
    refresh_token: Optional[str] = None  # 部分Provider不下发刷新令牌
    expires_at: datetime
    scope: Optional[str] = None
    token_type: str = "Bearer"


class AuthorizationUrl(BaseModel):
    """授权URL"""

    auth_url: str
    state: str
    expires_at: datetime


class ExternalHealthRecord(BaseModel):
    """单个用户单日的健康数据（通用格式）"""

    date: date
    provider: ProviderName
    steps: Optional[int] = None
    weight: Optional[float] = None  # kg
    calories_burned: Optional[int] = None
    exercise_minutes: Optional[int] = None
    sleep_minutes: Optional[int] = None
    heart_rate: Optional[int] = None
    distance: Optional[float] = None  # 米
    active_minutes: Optional[int] = None
    resting_heart_rate: Optional[int] = None
    raw_data: Optional[Dict[str, Any]] = None  # 原始数据，便于排查


class HealthDataProvider(ABC):
    """第三方数据源Provider抽象接口"""

    @property
    @abstractmethod
    def name(self) -> ProviderName:
        """Provider标识"""
        pass

    @abstractmethod
    def get_authorization_url(self, state: str) -> AuthorizationUrl:
        """
        构造授权URL（无副作用）

        Args:
            state: 已编码的OAuth state，原样放入URL

        Returns:
            授权URL
        """
        pass

    @abstractmethod
    async def exchange_code_for_token(self, code: str) -> OAuthCredentials:
        """
        用授权码换取令牌

        Args:
            code: 回调中的授权码

        Returns:
            OAuth凭证

        Raises:
            AuthExchangeError: Provider拒绝授权码
        """
        pass

    @abstractmethod
    async def fetch_health_data(
        self, credentials: OAuthCredentials, start_date: datetime, end_date: datetime
    ) -> List[ExternalHealthRecord]:
        """
        拉取健康数据，无数据时返回空列表

        Args:
            credentials: OAuth凭证
            start_date: 开始时间
            end_date: 结束时间

        Returns:
            按天聚合的健康数据

        Raises:
            UnauthorizedError: 凭证无效
            ProviderUnavailableError: 网络或Provider服务故障
        """
        pass

    @abstractmethod
    async def refresh_access_token(self, refresh_token: str) -> OAuthCredentials:
        """
        刷新访问令牌

        Args:
            refresh_token: 刷新令牌

        Returns:
            新的OAuth凭证

        Raises:
            UnauthorizedError: 刷新令牌无效或已撤销，需要用户重新授权
        """
        pass

    @abstractmethod
    async def revoke_access(self, credentials: OAuthCredentials) -> None:
        """撤销授权（尽力而为，调用方忽略失败）"""
        pass

    async def validate_credentials(self, credentials: OAuthCredentials) -> bool:
        """检查凭证是否仍然有效"""
        return True

    def available_scopes(self) -> List[Dict[str, str]]:
        """可申请的权限范围"""
        return []

    async def close(self):
        """释放HTTP连接等资源"""
        pass
