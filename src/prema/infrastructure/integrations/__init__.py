"""Backend integrations."""

from prema.infrastructure.integrations.http_pool import HttpClientPool
from prema.infrastructure.integrations.prema_client import (
    INVALID_CREDENTIALS_MESSAGE,
    LOGIN_FAILED_MESSAGE,
    PremaApiClient,
    extract_error_detail,
)
from prema.infrastructure.integrations.request_context import RequestContext

__all__ = [
    "INVALID_CREDENTIALS_MESSAGE",
    "LOGIN_FAILED_MESSAGE",
    "HttpClientPool",
    "PremaApiClient",
    "RequestContext",
    "extract_error_detail",
]
