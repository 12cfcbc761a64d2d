"""
Fitbit API客户端
"""
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode
import httpx

from app.config import settings
from app.integrations.base.client import BaseProviderClient
from app.integrations.fitbit.constants import (
    FITBIT_AUTH_URL,
    FITBIT_TOKEN_URL,
    FITBIT_REVOKE_URL,
    PROFILE_ENDPOINT,
    ACTIVITY_ENDPOINT,
    SLEEP_ENDPOINT,
    HEART_ENDPOINT,
    WEIGHT_ENDPOINT,
    FITBIT_SCOPES,
)

logger = logging.getLogger(__name__)


class FitbitClient(BaseProviderClient):
    """Fitbit Web API客户端（令牌端点使用Basic认证）"""

    label = "Fitbit"

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(timeout=settings.PROVIDER_HTTP_TIMEOUT, transport=transport)
        self.client_id = client_id if client_id is not None else settings.FITBIT_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else settings.FITBIT_CLIENT_SECRET
        self.redirect_uri = redirect_uri if redirect_uri is not None else settings.OAUTH_REDIRECT_URI

    @property
    def basic_auth(self):
        return (self.client_id, self.client_secret)

    def get_authorization_url(self, state: str) -> str:
        """获取授权URL"""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(scope for scope, _ in FITBIT_SCOPES),
            "state": state,
        }
        return f"{FITBIT_AUTH_URL}?{urlencode(params)}"

    async def exchange_code_for_token(self, code: str) -> Dict[str, Any]:
        """
        用授权码换取访问令牌

        Returns:
            令牌信息 {access_token, refresh_token, expires_in, scope, user_id}
        """
        data = {
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
        }
        token_data = await self._post_token(
            FITBIT_TOKEN_URL, data, grant="authorization_code", auth=self.basic_auth
        )
        logger.info("成功获取Fitbit访问令牌")
        return token_data

    async def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """刷新访问令牌"""
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        token_data = await self._post_token(
            FITBIT_TOKEN_URL, data, grant="refresh_token", auth=self.basic_auth
        )
        logger.info("成功刷新Fitbit访问令牌")
        return token_data

    async def revoke_token(self, token: str) -> None:
        """撤销令牌"""
        await self._post_token(FITBIT_REVOKE_URL, {"token": token}, grant="revoke", auth=self.basic_auth)
        logger.info("Fitbit令牌已撤销")

    async def get_profile(self, access_token: str) -> Dict[str, Any]:
        """获取用户资料"""
        return await self._make_request("GET", PROFILE_ENDPOINT, access_token)

    async def get_activity_summary(self, access_token: str, date_str: str) -> Dict[str, Any]:
        """获取某天的活动汇总（步数、距离、卡路里、活跃时长）"""
        return await self._make_request("GET", ACTIVITY_ENDPOINT.format(date=date_str), access_token)

    async def get_sleep(self, access_token: str, date_str: str) -> Dict[str, Any]:
        """获取某天的睡眠记录"""
        return await self._make_request("GET", SLEEP_ENDPOINT.format(date=date_str), access_token)

    async def get_heart_rate(self, access_token: str, date_str: str) -> Dict[str, Any]:
        """获取某天的心率数据"""
        return await self._make_request("GET", HEART_ENDPOINT.format(date=date_str), access_token)

    async def get_weight(self, access_token: str, date_str: str) -> Dict[str, Any]:
        """获取体重记录（从该日期起最多30天）"""
        return await self._make_request("GET", WEIGHT_ENDPOINT.format(date=date_str), access_token)
