"""
Lose It! API客户端
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode
import httpx

from app.config import settings
from app.integrations.base.client import BaseProviderClient
from app.integrations.loseit.constants import (
    LOSE_IT_AUTH_URL,
    LOSE_IT_TOKEN_URL,
    NUTRITION_ENDPOINT,
    WEIGHT_ENDPOINT,
    EXERCISE_ENDPOINT,
    PROFILE_ENDPOINT,
    LOSE_IT_SCOPES,
)
from app.utils.datetime_helper import format_date

logger = logging.getLogger(__name__)


class LoseItClient(BaseProviderClient):
    """Lose It! API客户端"""

    label = "Lose It!"

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(timeout=settings.PROVIDER_HTTP_TIMEOUT, transport=transport)
        self.client_id = client_id if client_id is not None else settings.LOSE_IT_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else settings.LOSE_IT_CLIENT_SECRET
        self.redirect_uri = redirect_uri if redirect_uri is not None else settings.OAUTH_REDIRECT_URI

    def get_authorization_url(self, state: str) -> str:
        """获取授权URL"""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(scope for scope, _ in LOSE_IT_SCOPES),
            "state": state,
        }
        return f"{LOSE_IT_AUTH_URL}?{urlencode(params)}"

    async def exchange_code_for_token(self, code: str) -> Dict[str, Any]:
        """用授权码换取访问令牌"""
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
        }
        token_data = await self._post_token(LOSE_IT_TOKEN_URL, data, grant="authorization_code")
        logger.info("成功获取Lose It!访问令牌")
        return token_data

    async def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """刷新访问令牌"""
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        token_data = await self._post_token(LOSE_IT_TOKEN_URL, data, grant="refresh_token")
        logger.info("成功刷新Lose It!访问令牌")
        return token_data

    async def get_profile(self, access_token: str) -> Dict[str, Any]:
        """获取用户资料"""
        return await self._make_request("GET", PROFILE_ENDPOINT, access_token)

    async def _get_entries(
        self, url: str, access_token: str, start: datetime, end: datetime
    ) -> List[Dict[str, Any]]:
        params = {"start_date": format_date(start), "end_date": format_date(end)}
        data = await self._make_request("GET", url, access_token, params=params)
        return data or []

    async def get_daily_nutrition(
        self, access_token: str, start: datetime, end: datetime
    ) -> List[Dict[str, Any]]:
        """获取每日营养汇总"""
        return await self._get_entries(NUTRITION_ENDPOINT, access_token, start, end)

    async def get_weight_entries(
        self, access_token: str, start: datetime, end: datetime
    ) -> List[Dict[str, Any]]:
        """获取体重记录"""
        return await self._get_entries(WEIGHT_ENDPOINT, access_token, start, end)

    async def get_exercise_entries(
        self, access_token: str, start: datetime, end: datetime
    ) -> List[Dict[str, Any]]:
        """获取运动记录"""
        return await self._get_entries(EXERCISE_ENDPOINT, access_token, start, end)
