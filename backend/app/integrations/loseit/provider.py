"""
Lose It!数据源Provider实现
"""
import logging
from datetime import datetime, date, timedelta
from typing import Any, Dict, List, Optional

from app.config import settings
from app.core.exceptions import ProviderUnavailableError
from app.integrations.base import (
    HealthDataProvider,
    ProviderName,
    OAuthCredentials,
    AuthorizationUrl,
    ExternalHealthRecord,
)
from app.integrations.loseit.client import LoseItClient
from app.integrations.loseit.constants import LOSE_IT_SCOPES
from app.utils.datetime_helper import utc_now

logger = logging.getLogger(__name__)


def _round(value) -> Optional[int]:
    return round(value) if value is not None else None


class LoseItProvider(HealthDataProvider):
    """Lose It!数据源Provider（饮食、体重、运动）"""

    def __init__(self, client: Optional[LoseItClient] = None):
        self.client = client or LoseItClient()

    @property
    def name(self) -> ProviderName:
        return ProviderName.LOSE_IT

    def get_authorization_url(self, state: str) -> AuthorizationUrl:
        return AuthorizationUrl(
            auth_url=self.client.get_authorization_url(state),
            state=state,
            expires_at=utc_now() + timedelta(minutes=settings.OAUTH_STATE_TTL_MINUTES),
        )

    async def exchange_code_for_token(self, code: str) -> OAuthCredentials:
        token_data = await self.client.exchange_code_for_token(code)
        return self._to_credentials(token_data)

    async def refresh_access_token(self, refresh_token: str) -> OAuthCredentials:
        token_data = await self.client.refresh_access_token(refresh_token)
        credentials = self._to_credentials(token_data)
        # 未返回新的刷新令牌时沿用旧的
        if not credentials.refresh_token:
            credentials.refresh_token = refresh_token
        return credentials

    async def revoke_access(self, credentials: OAuthCredentials) -> None:
        logger.warning("Lose It!不提供撤销授权接口，令牌将自然过期")

    async def validate_credentials(self, credentials: OAuthCredentials) -> bool:
        try:
            profile = await self.client.get_profile(credentials.access_token)
            return bool(profile)
        except Exception as e:
            logger.warning(f"Lose It!凭证检查失败: {str(e)}")
            return False

    def available_scopes(self) -> List[Dict[str, str]]:
        return [{"scope": scope, "description": desc} for scope, desc in LOSE_IT_SCOPES]

    async def close(self):
        await self.client.close()

    async def fetch_health_data(
        self, credentials: OAuthCredentials, start_date: datetime, end_date: datetime
    ) -> List[ExternalHealthRecord]:
        """
        拉取营养、体重、运动数据并按日期合并

        运动记录的卡路里会累加到当天营养数据中的消耗卡路里上。
        """
        token = credentials.access_token
        nutrition = await self.client.get_daily_nutrition(token, start_date, end_date)
        weights = await self.client.get_weight_entries(token, start_date, end_date)
        exercises = await self.client.get_exercise_entries(token, start_date, end_date)

        by_date: Dict[date, Dict[str, Any]] = {}

        def day_entry(entry: Dict[str, Any]) -> Optional[Dict[str, Any]]:
            try:
                day = date.fromisoformat(str(entry["date"])[:10])
            except (KeyError, ValueError):
                logger.warning(f"Lose It!记录日期无效: {entry}")
                return None
            return by_date.setdefault(day, {"date": day})

        for entry in nutrition:
            data = day_entry(entry)
            if data is not None:
                data["calories_burned"] = (entry.get("calories") or {}).get("burned")

        for entry in weights:
            data = day_entry(entry)
            if data is not None:
                data["weight"] = entry.get("weight")

        for entry in exercises:
            data = day_entry(entry)
            if data is not None:
                data["exercise_minutes"] = (data.get("exercise_minutes") or 0) + (entry.get("duration") or 0)
                data["calories_burned"] = (data.get("calories_burned") or 0) + (
                    entry.get("calories_burned") or 0
                )

        records = []
        for day, data in sorted(by_date.items()):
            records.append(
                ExternalHealthRecord(
                    date=day,
                    provider=ProviderName.LOSE_IT,
                    weight=data.get("weight"),
                    calories_burned=_round(data.get("calories_burned")),
                    exercise_minutes=_round(data.get("exercise_minutes")),
                    raw_data={k: v for k, v in data.items() if k != "date"},
                )
            )

        logger.info(f"获取Lose It!数据: {len(records)}条")
        return records

    @staticmethod
    def _to_credentials(token_data: Dict[str, Any]) -> OAuthCredentials:
        if not token_data.get("access_token"):
            raise ProviderUnavailableError("Lose It!", "令牌响应缺少access_token")

        expires_in = int(token_data.get("expires_in", 3600))
        return OAuthCredentials(
            access_token=token_data["access_token"],
            refresh_token=token_data.get("refresh_token"),
            expires_at=utc_now() + timedelta(seconds=expires_in),
            scope=token_data.get("scope"),
            token_type=token_data.get("token_type") or "Bearer",
        )
