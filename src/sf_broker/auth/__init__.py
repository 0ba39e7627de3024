from .factory import ConnectionFactory
from .cache import SessionCache
from .login_oauth import TokenExchangeClient
from .login_soap import DirectLoginClient
from .selector import ACCEPTED_COMBINATIONS, select_strategy
from .token_store import TokenStore
from .types import (
    AuthStrategy,
    ClientCredentials,
    CredentialBundle,
    DirectToken,
    PasswordOnly,
    PasswordWithApp,
    RefreshToken,
    Session,
    TokenResult,
)

__all__ = [
    "ACCEPTED_COMBINATIONS",
    "AuthStrategy",
    "ClientCredentials",
    "ConnectionFactory",
    "CredentialBundle",
    "DirectLoginClient",
    "DirectToken",
    "PasswordOnly",
    "PasswordWithApp",
    "RefreshToken",
    "Session",
    "SessionCache",
    "TokenExchangeClient",
    "TokenResult",
    "TokenStore",
    "select_strategy",
]
