"""
Configuration validation for VoiceSync.

Provides pydantic v2 models for validating upload queue configuration
with fail-fast behavior and sensible defaults.
"""

from pydantic import BaseModel, Field, field_validator, ValidationError
from typing import Optional
import logging

log = logging.getLogger('VoiceSync.config')


class SyncConfig(BaseModel):
    """
    VoiceSync configuration with validation.

    Required:
        api_url: Recordings API base URL (e.g., https://api.example.com)

    Optional tunables:
        data_dir: Directory holding the persisted queue and cache (default: ./data)
        storage_backend: file, sqlite or memory (default: file)
        queue_slot: Name of the slot the queue is persisted under
        connect_timeout: Connection timeout in seconds (default: 5.0, range: 1.0-30.0)
        upload_timeout: Total upload timeout in seconds (default: 60.0, range: 5.0-600.0)
        min_pass_interval: Minimum seconds between queue passes, 0 disables (default: 0.0)
        cache_ttl: Recordings cache TTL in seconds (default: 300, range: 0-86400)
    """

    # Required fields
    api_url: str

    # Storage
    data_dir: str = './data'
    storage_backend: str = Field(
        default='file',
        description="Where the queue is persisted: file, sqlite, memory"
    )
    queue_slot: str = Field(default='upload-queue-store', min_length=1)

    # Uploader timeouts (in seconds)
    connect_timeout: float = Field(default=5.0, ge=1.0, le=30.0)
    upload_timeout: float = Field(default=60.0, ge=5.0, le=600.0)

    # Processing
    min_pass_interval: float = Field(
        default=0.0,
        ge=0.0,
        le=3600.0,
        description="Skip a queue pass if the previous one started less than this many seconds ago. 0 = never skip."
    )

    # Recordings cache
    cache_ttl: int = Field(default=300, ge=0, le=86400)

    # Logging
    log_level: str = Field(default='info')
    json_logs: bool = False
    debug_logging: bool = Field(
        default=False,
        description="Log every queue transition at TRACE regardless of log_level (for troubleshooting only)"
    )

    @field_validator('api_url', mode='after')
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Validate api_url is a valid HTTP/HTTPS URL."""
        if not v:
            raise ValueError('api_url is required')
        if not v.startswith(('http://', 'https://')):
            raise ValueError('api_url must start with http:// or https://')
        return v.rstrip('/')  # Normalize: remove trailing slash

    @field_validator('storage_backend', mode='before')
    @classmethod
    def validate_storage_backend(cls, v):
        """Validate storage_backend is one of: file, sqlite, memory."""
        valid = ('file', 'sqlite', 'memory')
        if isinstance(v, str) and v.lower() in valid:
            return v.lower()
        raise ValueError(f"storage_backend must be one of {valid}, got: {v}")

    @field_validator('log_level', mode='before')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log_level is one of: trace, debug, info, warning, error."""
        valid = ('trace', 'debug', 'info', 'warning', 'error')
        if isinstance(v, str) and v.lower() in valid:
            return v.lower()
        raise ValueError(f"log_level must be one of {valid}, got: {v}")

    @field_validator('json_logs', 'debug_logging', mode='before')
    @classmethod
    def validate_booleans(cls, v):
        """Ensure boolean fields are actual booleans, not truthy strings."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            lower = v.lower()
            if lower in ('true', '1', 'yes'):
                return True
            if lower in ('false', '0', 'no'):
                return False
            raise ValueError(f"Invalid boolean value: {v}")
        raise ValueError(f"Expected boolean, got {type(v).__name__}")

    def log_config(self) -> None:
        """Log configuration summary."""
        log.info(
            f"VoiceSync config: api_url={self.api_url}, "
            f"data_dir={self.data_dir}, backend={self.storage_backend}, "
            f"slot={self.queue_slot}, "
            f"connect_timeout={self.connect_timeout}s, "
            f"upload_timeout={self.upload_timeout}s, "
            f"min_pass_interval={self.min_pass_interval}s, "
            f"cache_ttl={self.cache_ttl}s"
        )
        if self.debug_logging:
            log.warning(
                "DEBUG LOGGING ENABLED: every queue transition is logged. "
                "Use only to troubleshoot a problem, then disable."
            )
        if self.storage_backend == 'memory':
            log.warning("Memory storage backend: queued uploads will NOT survive a restart")


def validate_config(config_dict: dict) -> tuple[Optional[SyncConfig], Optional[str]]:
    """
    Validate configuration dictionary and return SyncConfig or error message.

    Args:
        config_dict: Dictionary containing configuration values

    Returns:
        Tuple of (SyncConfig, None) on success,
        or (None, error_message) on validation failure
    """
    try:
        config = SyncConfig(**config_dict)
        return (config, None)
    except ValidationError as e:
        # Extract user-friendly error messages
        errors = []
        for error in e.errors():
            field = '.'.join(str(loc) for loc in error['loc'])
            msg = error['msg']
            errors.append(f"{field}: {msg}")
        error_message = '; '.join(errors)
        return (None, error_message)


# Re-export ValidationError for external use
__all__ = ['SyncConfig', 'validate_config', 'ValidationError']
