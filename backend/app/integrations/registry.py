"""
Provider注册表 - 按ProviderName查找数据源适配器
"""
import logging
from typing import Dict, List, Optional, Type

from app.integrations.base import HealthDataProvider, ProviderName
from app.integrations.strava import StravaProvider
from app.integrations.fitbit import FitbitProvider
from app.integrations.loseit import LoseItProvider

logger = logging.getLogger(__name__)

# 前端展示用的Provider说明
PROVIDER_INFO: Dict[ProviderName, Dict[str, object]] = {
    ProviderName.STRAVA: {
        "name": "Strava",
        "description": "记录跑步、骑行等运动数据",
        "data_types": ["运动", "心率", "距离", "卡路里"],
    },
    ProviderName.LOSE_IT: {
        "name": "Lose It!",
        "description": "记录饮食与体重",
        "data_types": ["卡路里", "体重", "饮食", "运动"],
    },
    ProviderName.FITBIT: {
        "name": "Fitbit",
        "description": "全面的健康与运动追踪",
        "data_types": ["步数", "睡眠", "心率", "体重", "卡路里", "活动"],
    },
}


class ProviderRegistry:
    """Provider注册表"""

    _provider_classes: Dict[ProviderName, Type[HealthDataProvider]] = {
        ProviderName.STRAVA: StravaProvider,
        ProviderName.FITBIT: FitbitProvider,
        ProviderName.LOSE_IT: LoseItProvider,
    }

    _default: Optional["ProviderRegistry"] = None

    def __init__(self, providers: Dict[ProviderName, HealthDataProvider]):
        """
        Args:
            providers: ProviderName -> 适配器实例，必须覆盖所有ProviderName

        Raises:
            ValueError: 有ProviderName未注册适配器，或适配器与名称不符
        """
        missing = [name.value for name in ProviderName if name not in providers]
        if missing:
            raise ValueError(f"以下Provider未注册适配器: {', '.join(missing)}")

        for name, provider in providers.items():
            if provider.name != name:
                raise ValueError(f"适配器名称不匹配: 注册为{name.value}, 实际为{provider.name.value}")

        self._providers = dict(providers)

    @classmethod
    def create_default(cls) -> "ProviderRegistry":
        """用配置中的凭据创建所有内置Provider"""
        providers = {name: provider_class() for name, provider_class in cls._provider_classes.items()}
        logger.info(f"Provider注册完成: {', '.join(name.value for name in providers)}")
        return cls(providers)

    @classmethod
    def get_default(cls) -> "ProviderRegistry":
        """获取进程内共享的注册表（单例）"""
        if cls._default is None:
            cls._default = cls.create_default()
        return cls._default

    @classmethod
    async def close_default(cls):
        """关闭共享注册表"""
        if cls._default is not None:
            await cls._default.close_all()
            cls._default = None

    def get_provider(self, name: ProviderName) -> HealthDataProvider:
        """
        获取Provider

        Raises:
            ValueError: 未知的Provider
        """
        try:
            return self._providers[ProviderName(name)]
        except (KeyError, ValueError):
            available = ", ".join(self.supported_providers())
            raise ValueError(f"未知的Provider: {name}. 可用的Provider: {available}")

    def supported_providers(self) -> List[str]:
        return [name.value for name in self._providers]

    def is_supported(self, name: str) -> bool:
        try:
            return ProviderName(name) in self._providers
        except ValueError:
            return False

    def get_provider_info(self, name: ProviderName) -> Dict[str, object]:
        """
        获取Provider展示信息

        Returns:
            {provider, name, description, data_types, scopes}
        """
        provider = self.get_provider(name)
        info = PROVIDER_INFO[provider.name]
        return {
            "provider": provider.name.value,
            "name": info["name"],
            "description": info["description"],
            "data_types": list(info["data_types"]),
            "scopes": provider.available_scopes(),
        }

    async def close_all(self):
        """关闭所有Provider实例"""
        for name, provider in self._providers.items():
            try:
                await provider.close()
                logger.info(f"Provider已关闭: {name.value}")
            except Exception as e:
                logger.error(f"关闭Provider失败: {name.value} - {str(e)}")
