"""Storage provider registry.

In-memory StorageAccountResolver: keeps the configured storage accounts,
knows which factory builds a provider for each backend type, and caches
one provider instance per account.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional

from ..entities.capabilities import ProviderCapabilities
from ..entities.protocols import ResolvedStorage, StorageAccount, StorageProvider
from ..adapters.s3_provider import S3StorageProvider
from ..adapters.onedrive_provider import OneDriveStorageProvider
from ....core.exceptions import (
    ConfigurationError,
    StorageAccountNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[StorageAccount], StorageProvider]


def build_s3_provider(account: StorageAccount) -> StorageProvider:
    """Build an AWS S3 provider from account credentials."""
    credentials = account.credentials
    return S3StorageProvider(
        bucket=credentials.get("bucket", ""),
        region=credentials.get("region"),
        access_key_id=credentials.get("access_key_id"),
        secret_access_key=credentials.get("secret_access_key"),
        endpoint_url=credentials.get("endpoint"),
        provider_name=account.provider_type,
        part_url_expiry_seconds=account.settings.get("part_url_expiry_seconds", 3600),
    )


def build_s3_compatible_provider(account: StorageAccount) -> StorageProvider:
    """Build a provider for an S3-compatible vendor (Wasabi, Storj, R2...)."""
    credentials = account.credentials
    if not credentials.get("endpoint"):
        raise ConfigurationError(
            f"Storage account {account.id} ({account.provider_type}) requires an endpoint"
        )
    
    capabilities = ProviderCapabilities.s3_compatible()
    overrides = account.settings.get("capabilities")
    if overrides:
        capabilities = capabilities.with_overrides(**overrides)
    
    return S3StorageProvider(
        bucket=credentials.get("bucket", ""),
        region=credentials.get("region"),
        access_key_id=credentials.get("access_key_id"),
        secret_access_key=credentials.get("secret_access_key"),
        endpoint_url=credentials["endpoint"],
        capabilities=capabilities,
        provider_name=account.provider_type,
        part_url_expiry_seconds=account.settings.get("part_url_expiry_seconds", 3600),
        addressing_style="path",
    )


def build_onedrive_provider(account: StorageAccount) -> StorageProvider:
    """Build a OneDrive provider from app registration credentials."""
    credentials = account.credentials
    return OneDriveStorageProvider(
        tenant_id=credentials.get("tenant_id"),
        client_id=credentials.get("client_id"),
        client_secret=credentials.get("client_secret"),
        drive_id=credentials.get("drive_id"),
        user_id=credentials.get("user_id"),
        access_token=credentials.get("access_token"),
    )


DEFAULT_FACTORIES: Dict[str, ProviderFactory] = {
    "s3": build_s3_provider,
    "aws_s3": build_s3_provider,
    "wasabi": build_s3_compatible_provider,
    "storj": build_s3_compatible_provider,
    "s3_compatible": build_s3_compatible_provider,
    "onedrive": build_onedrive_provider,
}


class StorageProviderRegistry:
    """In-memory implementation of StorageAccountResolver."""
    
    def __init__(self, factories: Optional[Dict[str, ProviderFactory]] = None):
        self._factories: Dict[str, ProviderFactory] = dict(DEFAULT_FACTORIES if factories is None else factories)
        self._accounts: Dict[str, StorageAccount] = {}  # account_id -> account
        self._providers: Dict[str, StorageProvider] = {}  # account_id -> provider
        self._lock = asyncio.Lock()
    
    def register_factory(self, provider_type: str, factory: ProviderFactory) -> None:
        """Register (or replace) the factory for a backend type."""
        self._factories[provider_type] = factory
        logger.info(f"Registered storage provider factory: {provider_type}")
    
    def available_provider_types(self) -> List[str]:
        return sorted(self._factories)
    
    async def add_account(self, account: StorageAccount) -> None:
        """Register a storage account, replacing any account with the same id."""
        if account.provider_type not in self._factories:
            raise ValidationError(
                f"Unsupported storage provider type: {account.provider_type}",
                details={"provider_type": account.provider_type}
            )
        
        async with self._lock:
            self._accounts[account.id] = account
            # Credentials may have changed
            self._providers.pop(account.id, None)
        
        logger.info(f"Registered storage account {account.id} ({account.provider_type})")
    
    async def remove_account(self, account_id: str) -> bool:
        async with self._lock:
            self._providers.pop(account_id, None)
            removed = self._accounts.pop(account_id, None) is not None
        
        if removed:
            logger.info(f"Removed storage account {account_id}")
        return removed
    
    async def get_account(self, account_id: str) -> Optional[StorageAccount]:
        async with self._lock:
            return self._accounts.get(account_id)
    
    async def get_default_account(self, room_id: str) -> Optional[StorageAccount]:
        """Default account serving a room, if one is configured."""
        async with self._lock:
            for account in self._accounts.values():
                if account.is_default and account.serves_room(room_id):
                    return account
            return None
    
    async def get_provider(self, storage_account_id: str) -> StorageProvider:
        """Return the cached provider for an account, building it on first use."""
        async with self._lock:
            account = self._accounts.get(storage_account_id)
            if account is None:
                raise StorageAccountNotFoundError(storage_account_id)
            
            provider = self._providers.get(storage_account_id)
            if provider is None:
                factory = self._factories[account.provider_type]
                provider = factory(account)
                self._providers[storage_account_id] = provider
                logger.debug(f"Built {account.provider_type} provider for account {storage_account_id}")
            
            return provider
    
    async def resolve(self, room_id: str, storage_account_id: Optional[str] = None) -> ResolvedStorage:
        if storage_account_id:
            account = await self.get_account(storage_account_id)
            if account is None:
                raise StorageAccountNotFoundError(storage_account_id)
        else:
            account = await self.get_default_account(room_id)
            if account is None:
                raise ValidationError(
                    "No default storage account found for this room",
                    details={"room_id": room_id}
                )
        
        provider = await self.get_provider(account.id)
        return ResolvedStorage(provider=provider, account=account)
