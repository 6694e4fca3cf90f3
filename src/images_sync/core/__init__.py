"""Core utilities and shared components for images sync."""

from .logging_config import get_logger, set_log_level, setup_logger
from .exceptions import (
    ImagesSyncError,
    ConfigError,
    StoreError,
    StoreUnavailable,
    ObjectNotFound,
    UploadError,
    DeleteError,
    TransformError,
    UnsupportedFormat,
)
from .models import (
    AppConfig,
    DerivativeSpec,
    ExecutionReport,
    ExistingDerivative,
    InputImage,
    PendingMutation,
    ReconciliationState,
    StoreSettings,
    SyncConfig,
)
from .keys import (
    base_key_from_derivative_key,
    base_key_from_input_key,
    derivative_key,
    parse_derivative_suffix,
)
from .matching import match_spec, spec_identity, validate_specs

__all__ = [
    "get_logger",
    "set_log_level",
    "setup_logger",
    "ImagesSyncError",
    "ConfigError",
    "StoreError",
    "StoreUnavailable",
    "ObjectNotFound",
    "UploadError",
    "DeleteError",
    "TransformError",
    "UnsupportedFormat",
    "AppConfig",
    "DerivativeSpec",
    "ExecutionReport",
    "ExistingDerivative",
    "InputImage",
    "PendingMutation",
    "ReconciliationState",
    "StoreSettings",
    "SyncConfig",
    "base_key_from_derivative_key",
    "base_key_from_input_key",
    "derivative_key",
    "parse_derivative_suffix",
    "match_spec",
    "spec_identity",
    "validate_specs",
]
