"""
Fitbit数据源Provider实现
"""
import asyncio
import logging
from datetime import datetime, date, timedelta
from typing import Any, Dict, List, Optional

from app.config import settings
from app.core.exceptions import ProviderUnavailableError, UnauthorizedError
from app.integrations.base import (
    HealthDataProvider,
    ProviderName,
    OAuthCredentials,
    AuthorizationUrl,
    ExternalHealthRecord,
)
from app.integrations.fitbit.client import FitbitClient
from app.integrations.fitbit.constants import FITBIT_SCOPES
from app.utils.datetime_helper import utc_now, date_range

logger = logging.getLogger(__name__)


class FitbitProvider(HealthDataProvider):
    """Fitbit数据源Provider（步数、睡眠、心率、体重）"""

    def __init__(self, client: Optional[FitbitClient] = None, request_delay_ms: Optional[int] = None):
        self.client = client or FitbitClient()
        self.request_delay_ms = (
            request_delay_ms if request_delay_ms is not None else settings.FITBIT_REQUEST_DELAY_MS
        )

    @property
    def name(self) -> ProviderName:
        return ProviderName.FITBIT

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
        return self._to_credentials(token_data)

    async def revoke_access(self, credentials: OAuthCredentials) -> None:
        await self.client.revoke_token(credentials.access_token)

    async def validate_credentials(self, credentials: OAuthCredentials) -> bool:
        try:
            profile = await self.client.get_profile(credentials.access_token)
            return bool(profile)
        except Exception as e:
            logger.warning(f"Fitbit凭证检查失败: {str(e)}")
            return False

    def available_scopes(self) -> List[Dict[str, str]]:
        return [{"scope": scope, "description": desc} for scope, desc in FITBIT_SCOPES]

    async def close(self):
        await self.client.close()

    async def fetch_health_data(
        self, credentials: OAuthCredentials, start_date: datetime, end_date: datetime
    ) -> List[ExternalHealthRecord]:
        """
        逐日拉取Fitbit数据

        每天并发请求活动、睡眠、心率、体重四类数据，单类失败不影响其他数据；
        但任一请求返回凭证失效时立即中止整个拉取。

        Raises:
            UnauthorizedError: 访问令牌无效
        """
        records = []
        days = date_range(start_date, end_date)

        for index, day in enumerate(days):
            record = await self._fetch_day(credentials.access_token, day)
            if record:
                records.append(record)

            # 限流保护：每天之间稍作等待
            if self.request_delay_ms and index < len(days) - 1:
                await asyncio.sleep(self.request_delay_ms / 1000)

        logger.info(f"获取Fitbit数据: {len(records)}天（请求{len(days)}天）")
        return records

    async def _fetch_day(self, access_token: str, day: date) -> Optional[ExternalHealthRecord]:
        date_str = day.isoformat()
        activity, sleep, heart, weight = await asyncio.gather(
            self.client.get_activity_summary(access_token, date_str),
            self.client.get_sleep(access_token, date_str),
            self.client.get_heart_rate(access_token, date_str),
            self.client.get_weight(access_token, date_str),
            return_exceptions=True,
        )

        results = {"activity": activity, "sleep": sleep, "heart": heart, "weight": weight}
        for kind, result in results.items():
            if isinstance(result, UnauthorizedError):
                raise result
            if isinstance(result, Exception):
                logger.warning(f"Fitbit {kind}数据获取失败: date={date_str} - {str(result)}")
                results[kind] = None

        record = ExternalHealthRecord(date=day, provider=ProviderName.FITBIT)
        raw_data: Dict[str, Any] = {}

        summary = (results["activity"] or {}).get("summary")
        if summary:
            raw_data["activity"] = summary
            record.steps = summary.get("steps")
            record.calories_burned = summary.get("caloriesOut")
            distances = summary.get("distances") or []
            if distances and distances[0].get("distance"):
                record.distance = distances[0]["distance"] * 1000  # km -> m
            record.active_minutes = (summary.get("veryActiveMinutes") or 0) + (
                summary.get("fairlyActiveMinutes") or 0
            )
            record.exercise_minutes = record.active_minutes

        sleep_entries = (results["sleep"] or {}).get("sleep") or []
        if sleep_entries:
            raw_data["sleep"] = sleep_entries[0]
            record.sleep_minutes = sleep_entries[0].get("minutesAsleep")

        heart_entries = (results["heart"] or {}).get("activities-heart") or []
        if heart_entries and heart_entries[0].get("value"):
            raw_data["heart"] = heart_entries[0]["value"]
            record.resting_heart_rate = heart_entries[0]["value"].get("restingHeartRate")
            record.heart_rate = record.resting_heart_rate

        weight_entries = (results["weight"] or {}).get("weight") or []
        if weight_entries:
            raw_data["weight"] = weight_entries[0]
            record.weight = weight_entries[0].get("weight")

        # 至少有一项核心数据才记录该天
        if not (record.steps or record.weight or record.sleep_minutes or record.heart_rate):
            return None

        record.raw_data = raw_data
        return record

    @staticmethod
    def _to_credentials(token_data: Dict[str, Any]) -> OAuthCredentials:
        if not token_data.get("access_token"):
            raise ProviderUnavailableError("Fitbit", "令牌响应缺少access_token")

        # Fitbit返回相对有效期（秒），默认8小时
        expires_in = int(token_data.get("expires_in", 28800))
        return OAuthCredentials(
            access_token=token_data["access_token"],
            refresh_token=token_data.get("refresh_token"),
            expires_at=utc_now() + timedelta(seconds=expires_in),
            scope=token_data.get("scope"),
            token_type=token_data.get("token_type") or "Bearer",
        )
