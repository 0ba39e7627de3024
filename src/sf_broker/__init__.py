from .auth import ConnectionFactory, CredentialBundle, Session, select_strategy
from .client import AsyncSalesforceClient
from .config import BrokerSettings, bundle_from_env, bundle_from_mapping
from .exceptions import AuthError, AuthErrorKind
from .operations import OperationExecutor, ToolResult

__all__ = [
    "AsyncSalesforceClient",
    "AuthError",
    "AuthErrorKind",
    "BrokerSettings",
    "ConnectionFactory",
    "CredentialBundle",
    "OperationExecutor",
    "Session",
    "ToolResult",
    "bundle_from_env",
    "bundle_from_mapping",
    "select_strategy",
]
