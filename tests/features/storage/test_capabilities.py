"""Tests for provider capabilities and storage value types."""

import pytest

from neo_files.features.storage.entities import (
    KIB,
    MIB,
    GIB,
    TIB,
    ByteRange,
    ProviderCapabilities,
    SignedUrlOptions,
    UploadPart,
)


class TestProviderCapabilities:
    """Test capability envelopes."""
    
    def test_s3_limits(self):
        caps = ProviderCapabilities.s3()
        
        assert caps.supports_multipart_upload
        assert caps.minimum_part_size == 5 * MIB
        assert caps.maximum_part_size == 5 * GIB
        assert caps.maximum_part_count == 10000
        assert caps.maximum_file_size == 5 * TIB
    
    def test_onedrive_limits(self):
        caps = ProviderCapabilities.onedrive()
        
        assert caps.minimum_part_size == 320 * KIB
        assert caps.maximum_part_size == 320 * MIB
        assert caps.maximum_part_count == 1000
        assert caps.maximum_file_size == 100 * GIB
    
    def test_none_has_no_multipart(self):
        caps = ProviderCapabilities.none()
        
        assert not caps.supports_multipart_upload
        assert caps.maximum_multipart_size == 0
    
    def test_maximum_multipart_size(self):
        caps = ProviderCapabilities.onedrive()
        
        assert caps.maximum_multipart_size == 320 * MIB * 1000
    
    def test_with_overrides(self):
        caps = ProviderCapabilities.s3_compatible().with_overrides(maximum_part_count=1000)
        
        assert caps.maximum_part_count == 1000
        assert caps.minimum_part_size == 5 * MIB
    
    @pytest.mark.parametrize("overrides", [
        {"minimum_part_size": -1},
        {"minimum_part_size": 10, "maximum_part_size": 5},
        {"maximum_part_count": 0},
        {"supports_multipart_upload": True, "minimum_part_size": 0, "maximum_part_size": 10},
    ])
    def test_invalid_limits(self, overrides):
        with pytest.raises(ValueError):
            ProviderCapabilities(**overrides)
    
    def test_invalid_override_is_rejected(self):
        with pytest.raises(ValueError):
            ProviderCapabilities.s3().with_overrides(minimum_part_size=10 * GIB)
    
    def test_is_immutable(self):
        caps = ProviderCapabilities.s3()
        
        with pytest.raises(AttributeError):
            caps.minimum_part_size = 1


class TestStorageTypes:
    """Test value types shared by adapters."""
    
    def test_byte_range_header(self):
        byte_range = ByteRange(0, 1023)
        
        assert byte_range.to_header() == "bytes=0-1023"
        assert byte_range.length == 1024
    
    @pytest.mark.parametrize("start,end", [(-1, 5), (10, 5)])
    def test_invalid_byte_range(self, start, end):
        with pytest.raises(ValueError):
            ByteRange(start, end)
    
    def test_signed_url_options_expiry(self):
        with pytest.raises(ValueError):
            SignedUrlOptions(expires_in=0)
    
    def test_upload_parts_sort_by_number(self):
        parts = sorted([UploadPart(3, "c"), UploadPart(1, "a"), UploadPart(2, "b")])
        
        assert [part.part_number for part in parts] == [1, 2, 3]
    
    def test_upload_part_validation(self):
        with pytest.raises(ValueError):
            UploadPart(0, "a")
