from .config import GatewayConfig, LocationConfig, LogLevel, NamingConfig, load_config_from_env
from .exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ExternalServiceError,
    GatewayError,
    NotFoundError,
    StoreError,
    ValidationError,
    error_response,
)
from .principal import AccessLevel, PermissionGrant, Principal
from .permissions import can_access, derive_namespace, has_capability
from .naming import NameGuard, NameKind
from .locations import Location, LocationResolver
from .commands import Command, CommandType, CommandTypeRegistry, command_registry
from .store import HttpStore, Store, StorePath, StoreRequest, StoreVerb
from .identity import HttpIdentityService, IdentityService
from .credentials import CredentialsCache, RedisCredentialsSource, StaticCredentialsSource, StoreCredentials
from .services import CommandService, DatabaseService, LocatedCommand
from .gateway import Gateway, GatewayResult
from .logging import (
    safe_preview,
    redact_secrets,
    safe_log_value,
    GatewayFormatter,
    RequestLoggerAdapter,
    setup_logging,
    get_request_logger,
)

__all__ = [
    'GatewayConfig',
    'LocationConfig',
    'LogLevel',
    'NamingConfig',
    'load_config_from_env',
    'AuthenticationError',
    'AuthorizationError',
    'ConfigurationError',
    'ExternalServiceError',
    'GatewayError',
    'NotFoundError',
    'StoreError',
    'ValidationError',
    'error_response',
    'AccessLevel',
    'PermissionGrant',
    'Principal',
    'can_access',
    'derive_namespace',
    'has_capability',
    'NameGuard',
    'NameKind',
    'Location',
    'LocationResolver',
    'Command',
    'CommandType',
    'CommandTypeRegistry',
    'command_registry',
    'HttpStore',
    'Store',
    'StorePath',
    'StoreRequest',
    'StoreVerb',
    'HttpIdentityService',
    'IdentityService',
    'CredentialsCache',
    'RedisCredentialsSource',
    'StaticCredentialsSource',
    'StoreCredentials',
    'CommandService',
    'DatabaseService',
    'LocatedCommand',
    'Gateway',
    'GatewayResult',
    'safe_preview',
    'redact_secrets',
    'safe_log_value',
    'GatewayFormatter',
    'RequestLoggerAdapter',
    'setup_logging',
    'get_request_logger',
]
