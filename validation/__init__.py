"""
Validation module for VoiceSync.

Provides upload failure classification and configuration validation.
"""

from validation.errors import (
    FailureKind,
    UploadFailure,
    NetworkFailure,
    AuthFailure,
    ServerFailure,
    classify_exception,
    classify_http_error,
    failure_message,
)
from validation.config import SyncConfig, validate_config

__all__ = [
    'FailureKind',
    'UploadFailure',
    'NetworkFailure',
    'AuthFailure',
    'ServerFailure',
    'classify_exception',
    'classify_http_error',
    'failure_message',
    'SyncConfig',
    'validate_config',
]
