from .config import (
    EnforcementMode,
    EnforcementSettings,
    LoaderBackend,
    LogLevel,
    PolicyCoreConfig,
    load_config_from_env,
)
from .enforcer import PolicyEnforcer
from .exceptions import (
    BadRequestError,
    ConfigurationError,
    ForbiddenError,
    InternalError,
    InvalidPolicyError,
    PolicyCoreError,
    RequestError,
    StorageError,
    get_http_status,
)
from .loaders import (
    BasicPolicyDocumentLoader,
    InMemoryPolicyStore,
    InMemoryRoleStore,
    PolicyDocumentLoader,
    PolicyLoaderOpts,
    PolicyStore,
    ProjectRole,
    RoleStore,
    StoredPolicyDocumentLoader,
    create_policy_loader,
)
from .logging import (
    PolicyLogFormatter,
    PolicyLoggerAdapter,
    get_policy_logger,
    redact_secrets,
    safe_log_value,
    safe_preview,
    setup_logging,
)
from .permissions import (
    ADMIN_POLICY,
    DEVELOPER_POLICY,
    ROLE_POLICIES,
    SCOPE_HIERARCHY,
    VIEWER_POLICY,
    APIVerb,
    EndpointMetadata,
    NameOrUInt,
    PermissionScope,
    PolicyDocument,
    RequestAction,
    RoleKind,
    build_request_scopes,
    dump_policy,
    has_access,
    parse_policy,
    read_verb_group,
    read_write_verb_group,
    walk,
)

__all__ = [
    'ADMIN_POLICY',
    'DEVELOPER_POLICY',
    'ROLE_POLICIES',
    'SCOPE_HIERARCHY',
    'VIEWER_POLICY',
    'APIVerb',
    'EndpointMetadata',
    'NameOrUInt',
    'PermissionScope',
    'PolicyDocument',
    'RequestAction',
    'RoleKind',
    'build_request_scopes',
    'dump_policy',
    'has_access',
    'parse_policy',
    'read_verb_group',
    'read_write_verb_group',
    'walk',
    'PolicyEnforcer',
    'BasicPolicyDocumentLoader',
    'InMemoryPolicyStore',
    'InMemoryRoleStore',
    'PolicyDocumentLoader',
    'PolicyLoaderOpts',
    'PolicyStore',
    'ProjectRole',
    'RoleStore',
    'StoredPolicyDocumentLoader',
    'create_policy_loader',
    'EnforcementMode',
    'EnforcementSettings',
    'LoaderBackend',
    'LogLevel',
    'PolicyCoreConfig',
    'load_config_from_env',
    'BadRequestError',
    'ConfigurationError',
    'ForbiddenError',
    'InternalError',
    'InvalidPolicyError',
    'PolicyCoreError',
    'RequestError',
    'StorageError',
    'get_http_status',
    'PolicyLogFormatter',
    'PolicyLoggerAdapter',
    'get_policy_logger',
    'redact_secrets',
    'safe_log_value',
    'safe_preview',
    'setup_logging',
]
