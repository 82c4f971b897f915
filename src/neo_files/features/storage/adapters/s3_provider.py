"""S3 storage provider adapter.

Explicit-multipart backend family: every multipart step is a real call
against the S3 API (create, per-part presign, complete, abort). Works for
AWS S3 and S3-compatible services (Wasabi, Storj, Cloudflare R2) through
``endpoint_url`` and capability overrides.

boto3 is synchronous, so network calls run in a worker thread via
``asyncio.to_thread``; presigning is local and runs inline.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Sequence

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

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
from .keys import file_name_from_key, guess_content_type, normalize_prefix
from ....core.exceptions import (
    ConfigurationError,
    StorageObjectNotFoundError,
    StorageProviderError,
)
from ....utils import utc_now

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}

_PRESIGN_METHODS = {
    SignedUrlOperation.READ: "get_object",
    SignedUrlOperation.WRITE: "put_object",
    SignedUrlOperation.DELETE: "delete_object",
}


def _error_code(error: Exception) -> Optional[str]:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code")
    return None


def validate_part_order(parts: Sequence[UploadPart]) -> None:
    """Ensure parts are in strictly ascending part-number order.
    
    S3 rejects a CompleteMultipartUpload whose part list is unordered or
    repeats a part number.
    
    Raises:
        ValueError: if the list is empty, unordered or has duplicates
    """
    if not parts:
        raise ValueError("At least one part is required")
    
    previous = 0
    for part in parts:
        if part.part_number <= previous:
            raise ValueError(
                f"Parts must be in strictly ascending order without duplicates "
                f"(part {part.part_number} follows {previous})"
            )
        previous = part.part_number


class S3StorageProvider:
    """Storage provider backed by an S3 bucket."""
    
    def __init__(
        self,
        bucket: str,
        region: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client: Any = None,
        capabilities: Optional[ProviderCapabilities] = None,
        provider_name: str = "s3",
        part_url_expiry_seconds: int = 3600,
        addressing_style: str = "auto"
    ):
        if not bucket:
            raise ConfigurationError("S3 provider requires a bucket name")
        
        self._bucket = bucket
        self._provider_name = provider_name
        self._capabilities = capabilities or ProviderCapabilities.s3()
        self._part_url_expiry_seconds = part_url_expiry_seconds
        
        if client is not None:
            self._client = client
        else:
            self._client = boto3.client(
                "s3",
                region_name=region,
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
                config=Config(
                    signature_version="s3v4",
                    s3={"addressing_style": addressing_style},
                    retries={"max_attempts": 3, "mode": "standard"},
                ),
            )
        
        logger.debug(f"S3 provider '{provider_name}' ready for bucket {bucket}")
    
    @property
    def provider_type(self) -> str:
        return self._provider_name
    
    @property
    def bucket(self) -> str:
        return self._bucket
    
    def get_capabilities(self) -> ProviderCapabilities:
        return self._capabilities
    
    async def _call(self, operation: str, method: Callable[..., Any], **params: Any) -> Any:
        """Run a blocking boto3 call in a worker thread and wrap its failures."""
        try:
            return await asyncio.to_thread(method, **params)
        except (ClientError, BotoCoreError) as e:
            raise self._provider_error(operation, e) from e
    
    def _provider_error(self, operation: str, error: Exception) -> StorageProviderError:
        code = _error_code(error)
        logger.error(f"S3 {operation} failed on bucket {self._bucket}: {code or type(error).__name__}")
        return StorageProviderError(
            self._provider_name,
            operation,
            message=f"Failed to {operation.replace('_', ' ')}",
            backend_code=code,
        )
    
    def _presign(self, operation: str, client_method: str, params: Dict[str, Any], expires_in: int) -> str:
        try:
            return self._client.generate_presigned_url(
                ClientMethod=client_method,
                Params=params,
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as e:
            raise self._provider_error(operation, e) from e
    
    # Multipart plane
    
    async def create_multipart_upload(
        self,
        key: str,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None
    ) -> StorageOperationResult:
        params: Dict[str, Any] = {
            "Bucket": self._bucket,
            "Key": key,
            "ContentType": content_type or guess_content_type(key),
        }
        if metadata:
            params["Metadata"] = {k: str(v) for k, v in metadata.items()}
        
        response = await self._call("create_multipart_upload", self._client.create_multipart_upload, **params)
        upload_handle = response.get("UploadId")
        if not upload_handle:
            raise StorageProviderError(
                self._provider_name,
                "create_multipart_upload",
                message="Backend did not return an upload id",
            )
        
        return StorageOperationResult.ok("Multipart upload created", upload_handle=upload_handle)
    
    async def get_signed_url_for_part(
        self,
        key: str,
        upload_handle: str,
        part_number: int,
        content_length: int
    ) -> StorageOperationResult:
        url = self._presign(
            "get_signed_url_for_part",
            "upload_part",
            {
                "Bucket": self._bucket,
                "Key": key,
                "UploadId": upload_handle,
                "PartNumber": part_number,
                "ContentLength": content_length,
            },
            self._part_url_expiry_seconds,
        )
        return StorageOperationResult.ok(
            f"Signed URL generated for part {part_number}",
            url=url,
            expires_in=self._part_url_expiry_seconds,
        )
    
    async def complete_multipart_upload(
        self,
        key: str,
        upload_handle: str,
        parts: Sequence[UploadPart]
    ) -> StorageOperationResult:
        try:
            validate_part_order(parts)
        except ValueError as e:
            raise StorageProviderError(self._provider_name, "complete_multipart_upload", message=str(e)) from e
        
        response = await self._call(
            "complete_multipart_upload",
            self._client.complete_multipart_upload,
            Bucket=self._bucket,
            Key=key,
            UploadId=upload_handle,
            MultipartUpload={
                "Parts": [{"PartNumber": part.part_number, "ETag": part.etag} for part in parts]
            },
        )
        return StorageOperationResult.ok(
            "Multipart upload completed",
            location=response.get("Location"),
            etag=response.get("ETag"),
        )
    
    async def abort_multipart_upload(self, key: str, upload_handle: str) -> StorageOperationResult:
        await self._call(
            "abort_multipart_upload",
            self._client.abort_multipart_upload,
            Bucket=self._bucket,
            Key=key,
            UploadId=upload_handle,
        )
        return StorageOperationResult.ok("Multipart upload aborted")
    
    # Single-shot and read plane
    
    async def get_signed_url(self, key: str, options: SignedUrlOptions) -> str:
        params: Dict[str, Any] = {"Bucket": self._bucket, "Key": key}
        if options.operation is SignedUrlOperation.WRITE:
            params["ContentType"] = options.content_type or guess_content_type(key)
            if options.content_disposition:
                params["ContentDisposition"] = options.content_disposition
            if options.metadata:
                params["Metadata"] = dict(options.metadata)
        elif options.operation is SignedUrlOperation.READ and options.content_disposition:
            params["ResponseContentDisposition"] = options.content_disposition
        
        return self._presign("get_signed_url", _PRESIGN_METHODS[options.operation], params, options.expires_in)
    
    async def get_file_content(self, key: str, byte_range: Optional[ByteRange] = None) -> bytes:
        if byte_range is not None and not self._capabilities.supports_range_requests:
            raise StorageProviderError(
                self._provider_name,
                "get_file_content",
                message="Range requests are not supported by this provider",
            )
        
        params: Dict[str, Any] = {"Bucket": self._bucket, "Key": key}
        if byte_range is not None:
            params["Range"] = byte_range.to_header()
        
        def _read() -> bytes:
            response = self._client.get_object(**params)
            body = response["Body"]
            try:
                return body.read()
            finally:
                body.close()
        
        try:
            return await asyncio.to_thread(_read)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise StorageObjectNotFoundError(key, provider=self._provider_name) from e
            raise self._provider_error("get_file_content", e) from e
        except BotoCoreError as e:
            raise self._provider_error("get_file_content", e) from e
    
    # Metadata plane
    
    async def get_file_metadata(self, key: str) -> StorageFileMetadata:
        try:
            response = await asyncio.to_thread(self._client.head_object, Bucket=self._bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise StorageObjectNotFoundError(key, provider=self._provider_name) from e
            raise self._provider_error("get_file_metadata", e) from e
        except BotoCoreError as e:
            raise self._provider_error("get_file_metadata", e) from e
        
        return StorageFileMetadata(
            key=key,
            name=file_name_from_key(key),
            size=response.get("ContentLength", 0),
            last_modified=response.get("LastModified"),
            content_type=response.get("ContentType"),
            etag=response.get("ETag"),
            metadata=response.get("Metadata", {}),
        )
    
    async def list_files(self, path: str, options: Optional[ListOptions] = None) -> FileListing:
        options = options or ListOptions()
        params: Dict[str, Any] = {
            "Bucket": self._bucket,
            "Prefix": normalize_prefix(path),
            "MaxKeys": options.max_results,
        }
        if not options.recursive:
            params["Delimiter"] = options.delimiter
        if options.page_token:
            params["ContinuationToken"] = options.page_token
        
        response = await self._call("list_files", self._client.list_objects_v2, **params)
        
        files = [
            StorageFileMetadata(
                key=prefix["Prefix"],
                name=file_name_from_key(prefix["Prefix"]),
                is_directory=True,
            )
            for prefix in response.get("CommonPrefixes", [])
        ]
        for item in response.get("Contents", []):
            if item["Key"] == params["Prefix"]:
                continue
            files.append(StorageFileMetadata(
                key=item["Key"],
                name=file_name_from_key(item["Key"]),
                size=item.get("Size", 0),
                last_modified=item.get("LastModified"),
                etag=item.get("ETag"),
                is_directory=item["Key"].endswith("/"),
            ))
        
        return FileListing(files=files, next_page_token=response.get("NextContinuationToken"))
    
    async def delete_file(self, key: str) -> bool:
        await self._call("delete_file", self._client.delete_object, Bucket=self._bucket, Key=key)
        return True
    
    async def file_exists(self, key: str) -> bool:
        try:
            await self.get_file_metadata(key)
        except StorageObjectNotFoundError:
            return False
        return True
    
    async def get_storage_stats(self) -> StorageStats:
        def _scan() -> StorageStats:
            used_bytes = 0
            file_count = 0
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self._bucket):
                for item in page.get("Contents", []):
                    used_bytes += item.get("Size", 0)
                    file_count += 1
            # S3 has no capacity ceiling, so total/available stay unknown (0)
            return StorageStats(used_bytes=used_bytes, file_count=file_count, last_updated=utc_now())
        
        try:
            return await asyncio.to_thread(_scan)
        except (ClientError, BotoCoreError) as e:
            raise self._provider_error("get_storage_stats", e) from e
    
    async def test_connection(self) -> bool:
        try:
            await self._call("test_connection", self._client.head_bucket, Bucket=self._bucket)
        except StorageProviderError:
            return False
        return True
