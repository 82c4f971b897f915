"""
Upload orchestration settings for neo-files.

Environment-driven configuration for provider call timeouts, session
retention, the idle-session sweep and the shared Redis session store.
"""
from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Session locks must outlive a provider call by this factor
LOCK_TTL_MARGIN = 2.0


class UploadSettings(BaseSettings):
    """Settings for the multipart upload orchestrator.
    
    Every field can be overridden through a ``NEO_FILES_``-prefixed
    environment variable, e.g. ``NEO_FILES_TERMINAL_RETENTION_SECONDS=600``.
    """
    
    model_config = SettingsConfigDict(
        env_prefix="NEO_FILES_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )
    
    # Provider calls
    provider_call_timeout_seconds: float = Field(default=30.0, gt=0)
    provider_retry_attempts: int = Field(default=1, ge=0, le=5)
    part_url_expiry_seconds: int = Field(default=3600, gt=0)
    
    # Session lifecycle
    terminal_retention_seconds: int = Field(default=3600, gt=0)  # 1 hour
    idle_session_timeout_seconds: int = Field(default=86400, gt=0)  # 24 hours
    sweep_interval_seconds: int = Field(default=900, gt=0)  # 15 minutes
    
    # Storage layout
    storage_key_prefix: str = Field(default="rooms", min_length=1)
    
    # Shared session store (Redis)
    redis_url: Optional[str] = Field(default=None)
    redis_key_prefix: str = Field(default="neo_files:uploads", min_length=1)
    lock_timeout_seconds: float = Field(default=10.0, gt=0)
    lock_ttl_seconds: float = Field(default=60.0, gt=0)
    
    @property
    def is_shared_store_enabled(self) -> bool:
        """Check if a shared Redis session store is configured."""
        return bool(self.redis_url)
    
    def validate_config(self) -> Dict[str, Any]:
        """Validate cross-field constraints and return validation results."""
        errors: List[str] = []
        warnings: List[str] = []
        
        if self.idle_session_timeout_seconds <= self.sweep_interval_seconds:
            warnings.append(
                "IDLE_SESSION_TIMEOUT_SECONDS is not larger than SWEEP_INTERVAL_SECONDS; "
                "idle sessions will be aborted on the first sweep that sees them"
            )
        
        if self.lock_ttl_seconds < LOCK_TTL_MARGIN * self.provider_call_timeout_seconds:
            errors.append(
                f"LOCK_TTL_SECONDS must be at least {LOCK_TTL_MARGIN:g}x PROVIDER_CALL_TIMEOUT_SECONDS; "
                "session locks are renewed every third of their TTL and must outlive a stalled renewal"
            )
        
        return {
            "valid": len(errors) == 0,
            "errors": errors,
            "warnings": warnings,
            "config_summary": {
                "shared_store": self.is_shared_store_enabled,
                "terminal_retention_seconds": self.terminal_retention_seconds,
                "idle_session_timeout_seconds": self.idle_session_timeout_seconds,
            }
        }


@lru_cache()
def get_upload_settings() -> UploadSettings:
    """Get cached upload settings instance."""
    return UploadSettings()
