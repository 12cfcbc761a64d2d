"""
OAuth state编解码

state在发起连接时生成，经第三方授权页原样带回回调接口，用于把回调绑定到发起连接的用户。
格式: <base64url(JSON)>.<base64url(HMAC-SHA256)>，签名防止伪造，时间戳限制有效期。
"""
import base64
import hashlib
import hmac
import json
import logging
import secrets
import uuid
from datetime import timedelta
from typing import Optional

from pydantic import BaseModel, ValidationError

from app.core.exceptions import ExpiredStateError, MalformedStateError
from app.integrations.base import ProviderName
from app.utils.datetime_helper import Clock, utc_now, to_epoch_ms

logger = logging.getLogger(__name__)


class OAuthState(BaseModel):
    """state载荷"""

    user_id: uuid.UUID
    provider: ProviderName
    redirect_uri: str
    timestamp: int  # 毫秒时间戳
    nonce: str


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


def _b64url_decode(s: str) -> bytes:
    pad = "=" * (-len(s) % 4)
    return base64.urlsafe_b64decode((s + pad).encode("utf-8"))


class OAuthStateCodec:
    """带签名和有效期的OAuth state编解码器"""

    def __init__(self, secret: str, ttl_minutes: int = 10, clock: Optional[Clock] = None):
        if not secret:
            raise ValueError("OAuth state签名密钥不能为空")
        self._key = secret.encode("utf-8")
        self.ttl = timedelta(minutes=ttl_minutes)
        self.clock = clock or utc_now

    def _sign(self, payload_b64: str) -> str:
        mac = hmac.new(self._key, payload_b64.encode("utf-8"), hashlib.sha256).digest()
        return _b64url_encode(mac)

    def encode(self, user_id: uuid.UUID, provider: ProviderName, redirect_uri: str) -> str:
        """
        生成state

        Args:
            user_id: 发起连接的用户
            provider: 目标Provider
            redirect_uri: 授权回调地址

        Returns:
            URL安全的state字符串（每次调用都不同）
        """
        state = OAuthState(
            user_id=user_id,
            provider=provider,
            redirect_uri=redirect_uri,
            timestamp=to_epoch_ms(self.clock()),
            nonce=secrets.token_urlsafe(16),
        )
        raw = json.dumps(state.model_dump(mode="json"), separators=(",", ":"), sort_keys=True)
        payload_b64 = _b64url_encode(raw.encode("utf-8"))
        return f"{payload_b64}.{self._sign(payload_b64)}"

    def decode(self, token: str) -> OAuthState:
        """
        解析并校验state

        Args:
            token: 回调带回的state

        Returns:
            state载荷

        Raises:
            MalformedStateError: 格式错误、签名不匹配或字段缺失
            ExpiredStateError: 超过有效期
        """
        if not token or "." not in token:
            raise MalformedStateError("state格式无效")

        payload_b64, sig = token.split(".", 1)
        if not payload_b64 or not sig:
            raise MalformedStateError("state格式无效")

        expected = self._sign(payload_b64)
        if not hmac.compare_digest(sig.encode("utf-8"), expected.encode("utf-8")):
            logger.warning("OAuth state签名校验失败")
            raise MalformedStateError("state签名无效")

        try:
            state = OAuthState.model_validate_json(_b64url_decode(payload_b64))
        except (ValueError, ValidationError) as e:
            raise MalformedStateError(f"state内容无效: {str(e)}")

        age_ms = to_epoch_ms(self.clock()) - state.timestamp
        if age_ms > self.ttl.total_seconds() * 1000:
            raise ExpiredStateError(
                "state已过期，请重新发起连接",
                details={"age_seconds": age_ms // 1000},
            )

        return state
