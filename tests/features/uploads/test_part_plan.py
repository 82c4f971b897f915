"""Tests for part-size planning."""

import pytest

from neo_files.core.exceptions import PartPlanningError, ValidationError
from neo_files.features.storage.entities import KIB, MIB, GIB, TIB, ProviderCapabilities
from neo_files.features.uploads.entities import PartPlan, plan_parts


def capabilities(minimum, maximum, count, maximum_file_size=0):
    return ProviderCapabilities(
        supports_multipart_upload=True,
        minimum_part_size=minimum,
        maximum_part_size=maximum,
        maximum_part_count=count,
        maximum_file_size=maximum_file_size,
    )


class TestPlanParts:
    """Test part planning against provider limits."""
    
    def test_s3_twelve_mib(self):
        """12 MiB on S3 is three minimum-size parts."""
        plan = plan_parts(12 * MIB, ProviderCapabilities.s3())
        
        assert plan == PartPlan(part_size=5 * MIB, total_parts=3)
        assert plan.last_part_size(12 * MIB) == 2 * MIB
    
    def test_file_smaller_than_minimum_part(self):
        """Small files still get one part."""
        plan = plan_parts(100, ProviderCapabilities.s3())
        
        assert plan.total_parts == 1
        assert plan.last_part_size(100) == 100
    
    def test_exact_multiple(self):
        plan = plan_parts(10 * MIB, ProviderCapabilities.s3())
        
        assert plan == PartPlan(part_size=5 * MIB, total_parts=2)
        assert plan.last_part_size(10 * MIB) == 5 * MIB
    
    def test_part_size_grows_to_respect_part_count(self):
        """Minimum-size parts would exceed the count, so parts grow."""
        total_size = 100 * GIB
        plan = plan_parts(total_size, ProviderCapabilities.s3())
        
        assert plan.total_parts <= 10000
        assert plan.part_size == -(-total_size // 10000)
        assert plan.part_size * plan.total_parts >= total_size
    
    def test_onedrive_limits(self):
        plan = plan_parts(1 * GIB, ProviderCapabilities.onedrive())
        
        assert plan.part_size == 1_073_742
        assert plan.total_parts == 1000
    
    @pytest.mark.parametrize("total_size", [1, 5 * MIB - 1, 5 * MIB, 5 * MIB + 1, 48_828_125_000, 5 * TIB])
    def test_plan_respects_limits(self, total_size):
        """Every plan fits the provider envelope and covers the file."""
        caps = ProviderCapabilities.s3()
        plan = plan_parts(total_size, caps)
        
        assert plan.part_size <= caps.maximum_part_size
        assert plan.total_parts <= caps.maximum_part_count
        assert plan.part_size * plan.total_parts >= total_size
        assert plan.part_size * (plan.total_parts - 1) < total_size
    
    def test_infeasible_size(self):
        """100 GiB cannot fit into 1000 parts of 320 KiB."""
        with pytest.raises(PartPlanningError):
            plan_parts(100 * GIB, capabilities(320 * KIB, 320 * KIB, 1000))
    
    def test_largest_feasible_size(self):
        caps = capabilities(320 * KIB, 320 * KIB, 1000)
        
        plan = plan_parts(320 * KIB * 1000, caps)
        
        assert plan == PartPlan(part_size=320 * KIB, total_parts=1000)
        
        with pytest.raises(PartPlanningError):
            plan_parts(320 * KIB * 1000 + 1, caps)
    
    def test_maximum_file_size(self):
        """Declared file size limits are enforced."""
        with pytest.raises(PartPlanningError):
            plan_parts(5 * TIB + 1, ProviderCapabilities.s3())
    
    @pytest.mark.parametrize("total_size", [0, -1])
    def test_non_positive_size(self, total_size):
        with pytest.raises(ValidationError):
            plan_parts(total_size, ProviderCapabilities.s3())
    
    def test_provider_without_multipart(self):
        with pytest.raises(PartPlanningError):
            plan_parts(10 * MIB, ProviderCapabilities.none())
