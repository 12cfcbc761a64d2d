"""
第三方API客户端基类：统一HTTP调用与错误映射
"""
import logging
from typing import Any, Dict, Optional, Tuple
import httpx

from app.core.exceptions import (
    AuthExchangeError,
    ProviderUnavailableError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

# 这些状态码视为Provider暂时不可用，可重试
RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}


class BaseProviderClient:
    """第三方API客户端基类"""

    label: str = "provider"

    def __init__(self, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        # trust_env=False: 忽略代理环境变量，直连第三方API
        self.http_client = httpx.AsyncClient(
            timeout=timeout,
            trust_env=False,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def close(self):
        """关闭HTTP客户端"""
        await self.http_client.aclose()

    async def _post_token(
        self,
        url: str,
        data: Dict[str, Any],
        *,
        grant: str,
        auth: Optional[Tuple[str, str]] = None,
        as_json: bool = False,
    ) -> Dict[str, Any]:
        """
        调用令牌端点

        Args:
            url: 令牌端点
            data: 请求参数
            grant: authorization_code | refresh_token | revoke
            auth: HTTP Basic认证
            as_json: 以JSON而非表单提交

        Returns:
            令牌响应

        Raises:
            AuthExchangeError: 授权码被拒绝
            UnauthorizedError: 刷新令牌被拒绝
            ProviderUnavailableError: 网络或服务故障
        """
        kwargs: Dict[str, Any] = {"json": data} if as_json else {"data": data}
        if auth:
            kwargs["auth"] = auth

        try:
            response = await self.http_client.post(url, **kwargs)
            response.raise_for_status()
            return response.json() if response.content else {}
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.error(f"{self.label}令牌请求失败: grant={grant}, {status_code} {e.response.text}")
            if status_code in RETRYABLE_STATUS_CODES:
                raise ProviderUnavailableError(self.label, f"令牌端点返回{status_code}")
            if grant == "authorization_code":
                raise AuthExchangeError(self.label, e.response.text or str(status_code))
            raise UnauthorizedError(f"{self.label}刷新令牌已失效，请重新连接")
        except httpx.HTTPError as e:
            logger.error(f"{self.label}令牌请求异常: grant={grant} - {str(e)}")
            raise ProviderUnavailableError(self.label, str(e))
        except ValueError as e:
            logger.error(f"{self.label}令牌响应解析失败: {str(e)}")
            raise ProviderUnavailableError(self.label, "令牌响应格式错误")

    async def _make_request(
        self, method: str, url: str, access_token: str, **kwargs
    ) -> Any:
        """
        发送API请求

        Args:
            method: HTTP方法
            url: 请求URL
            access_token: 访问令牌
            **kwargs: 其他请求参数

        Returns:
            响应数据（无内容时返回空字典）

        Raises:
            UnauthorizedError: 401/403
            ProviderUnavailableError: 其他HTTP错误或网络异常
        """
        headers = {"Authorization": f"Bearer {access_token}"}

        try:
            response = await self.http_client.request(method, url, headers=headers, **kwargs)
            response.raise_for_status()
            return response.json() if response.content else {}
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.error(f"{self.label} API请求失败: {url} - {status_code}")
            if status_code in (401, 403):
                raise UnauthorizedError(f"{self.label}访问令牌无效，请重新连接")
            if status_code == 429:
                logger.warning(f"{self.label}触发限流")
            raise ProviderUnavailableError(self.label, f"API返回{status_code}")
        except httpx.HTTPError as e:
            logger.error(f"{self.label} API请求异常: {url} - {str(e)}")
            raise ProviderUnavailableError(self.label, str(e))
        except ValueError as e:
            logger.error(f"{self.label} API响应解析失败: {url} - {str(e)}")
            raise ProviderUnavailableError(self.label, "响应格式错误")
