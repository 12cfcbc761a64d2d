"""
集成模块异常定义

每种错误对应一个固定的HTTP状态码，调用方按类型区分处理，不依赖错误消息文本。
"""
from typing import Any, Dict, Optional


class IntegrationError(Exception):
    """集成模块异常基类"""

    default_code = "INTEGRATION_ERROR"
    default_status_code = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.status_code = status_code or self.default_status_code
        self.details = details or {}
        super().__init__(message)


class ConflictError(IntegrationError):
    """资源冲突（重复连接等）"""

    default_code = "CONFLICT"
    default_status_code = 409


class SyncInProgressError(ConflictError):
    """同一集成的同步正在进行中"""

    default_code = "SYNC_IN_PROGRESS"

    def __init__(self, integration_id: Any):
        super().__init__(
            message=f"集成正在同步中，请稍后再试: {integration_id}",
            details={"integration_id": str(integration_id)},
        )


class InvalidRequestError(IntegrationError):
    """请求无效（OAuth state无效、授权码无效等）"""

    default_code = "INVALID_REQUEST"
    default_status_code = 400


class NotFoundError(IntegrationError):
    """资源不存在"""

    default_code = "NOT_FOUND"
    default_status_code = 404

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            message=f"{resource}不存在: {identifier}",
            details={"resource": resource, "identifier": str(identifier)},
        )


class InvalidStateError(IntegrationError):
    """集成状态不允许当前操作（如对已撤销的集成发起同步）"""

    default_code = "INVALID_INTEGRATION_STATE"
    default_status_code = 409


class UnauthorizedError(IntegrationError):
    """第三方凭证失效且无法刷新，需要用户重新授权"""

    default_code = "UNAUTHORIZED"
    default_status_code = 401


class AuthorizationError(IntegrationError):
    """当前用户无权操作该集成"""

    default_code = "FORBIDDEN"
    default_status_code = 403

    def __init__(self, message: str = "无权操作该集成"):
        super().__init__(message=message)


class ProviderUnavailableError(IntegrationError):
    """第三方服务暂时不可用（可重试）"""

    default_code = "PROVIDER_UNAVAILABLE"
    default_status_code = 503

    def __init__(self, provider: str, message: str):
        super().__init__(
            message=f"{provider}服务暂时不可用: {message}",
            details={"provider": provider},
        )


class AuthExchangeError(IntegrationError):
    """授权码换取令牌失败（授权码无效或已使用）"""

    default_code = "AUTH_EXCHANGE_FAILED"
    default_status_code = 400

    def __init__(self, provider: str, message: str):
        super().__init__(
            message=f"{provider}授权码换取令牌失败: {message}",
            details={"provider": provider},
        )


class OAuthStateError(IntegrationError):
    """OAuth state参数错误基类"""

    default_code = "INVALID_OAUTH_STATE"
    default_status_code = 400


class MalformedStateError(OAuthStateError):
    """state无法解析、签名不匹配或结构不正确"""


class ExpiredStateError(OAuthStateError):
    """state已超过有效期"""

    default_code = "EXPIRED_OAUTH_STATE"
