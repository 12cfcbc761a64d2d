"""
Strava数据源Provider实现
"""
import logging
from collections import defaultdict
from datetime import datetime, date, timedelta, timezone
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
from app.integrations.strava.client import StravaClient
from app.integrations.strava.constants import STRAVA_SCOPES
from app.utils.datetime_helper import utc_now

logger = logging.getLogger(__name__)


class StravaProvider(HealthDataProvider):
    """Strava数据源Provider（运动记录）"""

    def __init__(self, client: Optional[StravaClient] = None):
        self.client = client or StravaClient()

    @property
    def name(self) -> ProviderName:
        return ProviderName.STRAVA

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
        if not credentials.refresh_token:
            credentials.refresh_token = refresh_token
        return credentials

    async def revoke_access(self, credentials: OAuthCredentials) -> None:
        await self.client.deauthorize(credentials.access_token)

    async def validate_credentials(self, credentials: OAuthCredentials) -> bool:
        try:
            athlete = await self.client.get_athlete(credentials.access_token)
            return bool(athlete)
        except Exception as e:
            logger.warning(f"Strava凭证检查失败: {str(e)}")
            return False

    def available_scopes(self) -> List[Dict[str, str]]:
        return [{"scope": scope, "description": desc} for scope, desc in STRAVA_SCOPES]

    async def close(self):
        await self.client.close()

    async def fetch_health_data(
        self, credentials: OAuthCredentials, start_date: datetime, end_date: datetime
    ) -> List[ExternalHealthRecord]:
        """
        拉取运动记录并按天聚合

        同一天的多次运动合并为一条记录：时长、卡路里、距离求和，
        心率取有心率数据的运动的平均值。
        """
        activities = await self.client.get_activities(
            credentials.access_token, start_date, end_date
        )

        by_day: Dict[date, List[Dict[str, Any]]] = defaultdict(list)
        for activity in activities:
            try:
                day = date.fromisoformat(activity["start_date"][:10])
            except (KeyError, TypeError, ValueError):
                logger.warning(f"Strava活动start_date无效: id={activity.get('id')}")
                continue
            by_day[day].append(activity)

        records = [self._aggregate_day(day, items) for day, items in sorted(by_day.items())]
        logger.info(f"成功解析{len(records)}天Strava数据（{len(activities)}条活动）")
        return records

    def _aggregate_day(self, day: date, activities: List[Dict[str, Any]]) -> ExternalHealthRecord:
        minutes = sum(round((a.get("moving_time") or 0) / 60) for a in activities)
        calories = sum(a.get("calories") or 0 for a in activities)
        distance = sum(a.get("distance") or 0 for a in activities)

        heart_rates = [
            a["average_heartrate"]
            for a in activities
            if a.get("has_heartrate") and a.get("average_heartrate") is not None
        ]
        heart_rate = round(sum(heart_rates) / len(heart_rates)) if heart_rates else None

        return ExternalHealthRecord(
            date=day,
            provider=ProviderName.STRAVA,
            exercise_minutes=minutes,
            active_minutes=minutes,
            calories_burned=round(calories) if calories else None,
            distance=float(distance) if distance else None,
            heart_rate=heart_rate,
            raw_data={"activities": activities},
        )

    @staticmethod
    def _to_credentials(token_data: Dict[str, Any]) -> OAuthCredentials:
        if not token_data.get("access_token"):
            raise ProviderUnavailableError("Strava", "令牌响应缺少access_token")

        # Strava返回绝对过期时间（Unix秒），兼容expires_in
        if token_data.get("expires_at"):
            expires_at = datetime.fromtimestamp(int(token_data["expires_at"]), tz=timezone.utc)
        else:
            expires_at = utc_now() + timedelta(seconds=int(token_data.get("expires_in", 21600)))

        return OAuthCredentials(
            access_token=token_data["access_token"],
            refresh_token=token_data.get("refresh_token"),
            expires_at=expires_at,
            scope=token_data.get("scope"),
            token_type=token_data.get("token_type") or "Bearer",
        )
