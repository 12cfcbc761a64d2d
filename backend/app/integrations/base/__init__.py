"""
数据源集成基类
"""
from app.integrations.base.provider import (
    HealthDataProvider,
    ProviderName,
    IntegrationStatus,
    OAuthCredentials,
    AuthorizationUrl,
    ExternalHealthRecord,
)
from app.integrations.base.validation import validate_external_record

__all__ = [
    "HealthDataProvider",
    "ProviderName",
    "IntegrationStatus",
    "OAuthCredentials",
    "AuthorizationUrl",
    "ExternalHealthRecord",
    "validate_external_record",
]
