"""
Strava API客户端
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode
import httpx

from app.config import settings
from app.integrations.base.client import BaseProviderClient
from app.integrations.strava.constants import (
    STRAVA_AUTH_URL,
    STRAVA_TOKEN_URL,
    STRAVA_DEAUTHORIZE_URL,
    ATHLETE_ENDPOINT,
    ACTIVITIES_ENDPOINT,
    ACTIVITIES_PER_PAGE,
    STRAVA_SCOPES,
)
from app.utils.datetime_helper import to_unix

logger = logging.getLogger(__name__)


class StravaClient(BaseProviderClient):
    """Strava API v3客户端"""

    label = "Strava"

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(timeout=settings.PROVIDER_HTTP_TIMEOUT, transport=transport)
        self.client_id = client_id if client_id is not None else settings.STRAVA_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else settings.STRAVA_CLIENT_SECRET
        self.redirect_uri = redirect_uri if redirect_uri is not None else settings.OAUTH_REDIRECT_URI

    def get_authorization_url(self, state: str) -> str:
        """
        获取授权URL

        Args:
            state: 状态参数（用于防CSRF）

        Returns:
            授权URL
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": ",".join(scope for scope, _ in STRAVA_SCOPES),
            "state": state,
            "approval_prompt": "auto",
        }
        return f"{STRAVA_AUTH_URL}?{urlencode(params)}"

    async def exchange_code_for_token(self, code: str) -> Dict[str, Any]:
        """
        用授权码换取访问令牌

        Returns:
            令牌信息 {access_token, refresh_token, expires_at, athlete}
        """
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "grant_type": "authorization_code",
        }
        token_data = await self._post_token(STRAVA_TOKEN_URL, data, grant="authorization_code")
        logger.info("成功获取Strava访问令牌")
        return token_data

    async def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """刷新访问令牌"""
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        token_data = await self._post_token(STRAVA_TOKEN_URL, data, grant="refresh_token")
        logger.info("成功刷新Strava访问令牌")
        return token_data

    async def deauthorize(self, access_token: str) -> None:
        """撤销应用授权"""
        await self._make_request("POST", STRAVA_DEAUTHORIZE_URL, access_token)
        logger.info("Strava授权已撤销")

    async def get_athlete(self, access_token: str) -> Dict[str, Any]:
        """获取运动员信息（轻量级请求，用于检查连接）"""
        return await self._make_request("GET", ATHLETE_ENDPOINT, access_token)

    async def get_activities(
        self, access_token: str, start: datetime, end: datetime
    ) -> List[Dict[str, Any]]:
        """
        获取时间范围内的全部运动记录（自动翻页）

        Args:
            access_token: 访问令牌
            start: 开始时间
            end: 结束时间

        Returns:
            活动列表
        """
        activities: List[Dict[str, Any]] = []
        page = 1
        while True:
            batch = await self._make_request(
                "GET",
                ACTIVITIES_ENDPOINT,
                access_token,
                params={
                    "after": to_unix(start),
                    "before": to_unix(end),
                    "per_page": ACTIVITIES_PER_PAGE,
                    "page": page,
                },
            )
            if not batch:
                break
            activities.extend(batch)
            if len(batch) < ACTIVITIES_PER_PAGE:
                break
            page += 1

        logger.info(f"获取Strava活动: {len(activities)}条, pages={page}")
        return activities
