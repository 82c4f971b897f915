"""OneDrive storage provider adapter (Microsoft Graph).

Session-style backend family: ``createUploadSession`` returns a single
pre-authenticated upload URL that accepts sequential byte ranges, and the
item is committed by the service when the last range arrives. The adapter
therefore hands out the session URL for every part and treats completion
as a no-op; only session creation and abort talk to Graph.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Sequence
from urllib.parse import quote

import httpx

from ..entities.capabilities import ProviderCapabilities
from ..entities.types import (
    ByteRange,
    FileListing,
    ListOptions,
    SignedUrlOperation,
    SignedUrlOptions,
    StorageFileMetadata,
    StorageOperationResult,
    StorageStats,
    UploadPart,
)
from .keys import file_name_from_key, normalize_prefix
from ....core.exceptions import (
    ConfigurationError,
    StorageObjectNotFoundError,
    StorageProviderError,
)
from ....utils import expires_at, from_iso, seconds_since, utc_now

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
TOKEN_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"

# Refresh the access token this many seconds before it expires
TOKEN_REFRESH_MARGIN_SECONDS = 60


class OneDriveStorageProvider:
    """Storage provider backed by a OneDrive / SharePoint drive."""
    
    def __init__(
        self,
        tenant_id: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        drive_id: Optional[str] = None,
        user_id: Optional[str] = None,
        access_token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        capabilities: Optional[ProviderCapabilities] = None,
        timeout_seconds: float = 30.0
    ):
        if not access_token and not all([tenant_id, client_id, client_secret]):
            raise ConfigurationError(
                "OneDrive provider requires tenant_id, client_id and client_secret, "
                "or a pre-issued access_token"
            )
        
        self._tenant_id = tenant_id
        self._client_id = client_id
        self._client_secret = client_secret
        self._static_token = access_token
        self._capabilities = capabilities or ProviderCapabilities.onedrive()
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self._owns_client = http_client is None
        
        if drive_id:
            self._drive_path = f"/drives/{drive_id}"
        elif user_id:
            self._drive_path = f"/users/{user_id}/drive"
        else:
            self._drive_path = "/me/drive"
        
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        self._token_lock = asyncio.Lock()
    
    @property
    def provider_type(self) -> str:
        return "onedrive"
    
    def get_capabilities(self) -> ProviderCapabilities:
        return self._capabilities
    
    async def close(self) -> None:
        """Close the underlying HTTP client if this provider created it."""
        if self._owns_client:
            await self._http.aclose()
    
    # Authentication
    
    async def _access_token(self) -> str:
        if self._static_token:
            return self._static_token
        
        async with self._token_lock:
            if (
                self._token
                and self._token_expires_at
                and seconds_since(self._token_expires_at) < -TOKEN_REFRESH_MARGIN_SECONDS
            ):
                return self._token
            
            try:
                response = await self._http.post(
                    TOKEN_URL_TEMPLATE.format(tenant_id=self._tenant_id),
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "scope": GRAPH_SCOPE,
                    },
                )
            except httpx.HTTPError as e:
                raise StorageProviderError("onedrive", "authenticate", message="Token request failed") from e
            
            if response.status_code != 200:
                raise StorageProviderError(
                    "onedrive",
                    "authenticate",
                    message="Authentication with OneDrive failed",
                    backend_code=str(response.status_code),
                )
            
            payload = response.json()
            self._token = payload["access_token"]
            self._token_expires_at = expires_at(int(payload.get("expires_in", 3600)))
            logger.debug("OneDrive access token refreshed")
            return self._token
    
    # HTTP plumbing
    
    def _item_path(self, key: str) -> str:
        """Graph path addressing an item by its drive-relative path."""
        normalized = key.strip("/")
        if not normalized:
            return f"{self._drive_path}/root"
        return f"{self._drive_path}/root:/{quote(normalized, safe='/')}:"
    
    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        absolute: bool = False,
        authenticated: bool = True,
        allow_not_found: bool = False,
        **kwargs: Any
    ) -> Optional[httpx.Response]:
        """Send a Graph request.
        
        Returns None for a 404 when ``allow_not_found`` is set; any other
        failure raises ``StorageProviderError``.
        """
        url = path if absolute else f"{GRAPH_BASE_URL}{path}"
        headers = dict(kwargs.pop("headers", None) or {})
        if authenticated:
            headers["Authorization"] = f"Bearer {await self._access_token()}"
        
        try:
            response = await self._http.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"OneDrive {operation} request failed: {type(e).__name__}")
            raise StorageProviderError("onedrive", operation, message=f"OneDrive {operation} request failed") from e
        
        if response.status_code == 404 and allow_not_found:
            return None
        
        if response.status_code >= 400:
            backend_code = None
            try:
                backend_code = response.json().get("error", {}).get("code")
            except ValueError:
                pass
            logger.error(f"OneDrive {operation} returned HTTP {response.status_code} ({backend_code})")
            raise StorageProviderError(
                "onedrive",
                operation,
                message=f"OneDrive {operation} failed with HTTP {response.status_code}",
                backend_code=backend_code or str(response.status_code),
            )
        
        return response
    
    def _to_metadata(self, item: Dict[str, Any], key: str) -> StorageFileMetadata:
        return StorageFileMetadata(
            key=key,
            name=item.get("name", file_name_from_key(key)),
            size=item.get("size", 0) or 0,
            last_modified=from_iso(item["lastModifiedDateTime"].replace("Z", "+00:00"))
            if item.get("lastModifiedDateTime") else None,
            content_type=(item.get("file") or {}).get("mimeType"),
            is_directory="folder" in item,
            etag=item.get("eTag"),
            url=item.get("webUrl"),
            metadata={"id": item["id"]} if item.get("id") else {},
        )
    
    # Multipart plane
    
    async def create_multipart_upload(
        self,
        key: str,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None
    ) -> StorageOperationResult:
        # Graph derives the content type from the name; metadata has no slot
        response = await self._request(
            "POST",
            f"{self._item_path(key)}/createUploadSession",
            "create_multipart_upload",
            json={
                "item": {
                    "@microsoft.graph.conflictBehavior": "replace",
                    "name": file_name_from_key(key),
                }
            },
        )
        payload = response.json()
        upload_url = payload.get("uploadUrl")
        if not upload_url:
            raise StorageProviderError(
                "onedrive",
                "create_multipart_upload",
                message="Backend did not return an upload session URL",
            )
        
        return StorageOperationResult.ok(
            "Upload session created",
            upload_handle=upload_url,
            expires_at=payload.get("expirationDateTime"),
        )
    
    async def get_signed_url_for_part(
        self,
        key: str,
        upload_handle: str,
        part_number: int,
        content_length: int
    ) -> StorageOperationResult:
        # The session URL is pre-authenticated and takes every byte range
        return StorageOperationResult.ok("Using upload session URL", url=upload_handle)
    
    async def complete_multipart_upload(
        self,
        key: str,
        upload_handle: str,
        parts: Sequence[UploadPart]
    ) -> StorageOperationResult:
        # Graph commits the item when the final byte range is PUT
        return StorageOperationResult.ok("Upload completed with final part")
    
    async def abort_multipart_upload(self, key: str, upload_handle: str) -> StorageOperationResult:
        # Session URLs must not carry the Graph bearer token
        await self._request(
            "DELETE",
            upload_handle,
            "abort_multipart_upload",
            absolute=True,
            authenticated=False,
            allow_not_found=True,
        )
        
        response = await self._request("GET", self._item_path(key), "abort_multipart_upload", allow_not_found=True)
        if response is not None:
            item_id = response.json()["id"]
            await self._request(
                "DELETE",
                f"{self._drive_path}/items/{item_id}",
                "abort_multipart_upload",
                allow_not_found=True,
            )
        
        return StorageOperationResult.ok("Upload aborted")
    
    # Single-shot and read plane
    
    async def get_signed_url(self, key: str, options: SignedUrlOptions) -> str:
        if options.operation is SignedUrlOperation.DELETE:
            raise StorageProviderError(
                "onedrive",
                "get_signed_url",
                message="OneDrive sharing links cannot grant delete access",
            )
        
        item = await self._request("GET", self._item_path(key), "get_signed_url", allow_not_found=True)
        if item is None:
            raise StorageObjectNotFoundError(key, provider="onedrive")
        
        response = await self._request(
            "POST",
            f"{self._drive_path}/items/{item.json()['id']}/createLink",
            "get_signed_url",
            json={
                "type": "view" if options.operation is SignedUrlOperation.READ else "edit",
                "scope": "anonymous",
                "expirationDateTime": expires_at(options.expires_in).isoformat().replace("+00:00", "Z"),
            },
        )
        return response.json()["link"]["webUrl"]
    
    async def get_file_content(self, key: str, byte_range: Optional[ByteRange] = None) -> bytes:
        if byte_range is not None and not self._capabilities.supports_range_requests:
            raise StorageProviderError(
                "onedrive",
                "get_file_content",
                message="Range requests are not supported by this provider",
            )
        
        headers = {"Range": byte_range.to_header()} if byte_range is not None else {}
        response = await self._request(
            "GET",
            f"{self._item_path(key)}/content",
            "get_file_content",
            allow_not_found=True,
            headers=headers,
            follow_redirects=True,
        )
        if response is None:
            raise StorageObjectNotFoundError(key, provider="onedrive")
        return response.content
    
    # Metadata plane
    
    async def get_file_metadata(self, key: str) -> StorageFileMetadata:
        response = await self._request("GET", self._item_path(key), "get_file_metadata", allow_not_found=True)
        if response is None:
            raise StorageObjectNotFoundError(key, provider="onedrive")
        return self._to_metadata(response.json(), key)
    
    async def list_files(self, path: str, options: Optional[ListOptions] = None) -> FileListing:
        options = options or ListOptions()
        prefix = normalize_prefix(path)
        
        if options.page_token:
            response = await self._request("GET", options.page_token, "list_files", absolute=True)
        else:
            response = await self._request(
                "GET",
                f"{self._item_path(prefix)}/children",
                "list_files",
                params={"$top": options.max_results},
            )
        
        payload = response.json()
        items: Iterable[Dict[str, Any]] = payload.get("value", [])
        files = [self._to_metadata(item, prefix + item["name"]) for item in items]
        return FileListing(files=files, next_page_token=payload.get("@odata.nextLink"))
    
    async def delete_file(self, key: str) -> bool:
        response = await self._request("DELETE", self._item_path(key), "delete_file", allow_not_found=True)
        return response is not None
    
    async def file_exists(self, key: str) -> bool:
        response = await self._request("GET", self._item_path(key), "file_exists", allow_not_found=True)
        return response is not None
    
    async def get_storage_stats(self) -> StorageStats:
        response = await self._request("GET", self._drive_path, "get_storage_stats")
        quota = response.json().get("quota", {})
        return StorageStats(
            total_bytes=quota.get("total", 0),
            used_bytes=quota.get("used", 0),
            available_bytes=quota.get("remaining", 0),
            file_count=quota.get("fileCount", 0),
            last_updated=utc_now(),
        )
    
    async def test_connection(self) -> bool:
        try:
            await self._request("GET", self._drive_path, "test_connection")
        except StorageProviderError:
            return False
        return True
