"""Part-size planning for multipart uploads."""

from dataclasses import dataclass

from ....core.exceptions import PartPlanningError
from ...storage.entities import ProviderCapabilities


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


@dataclass(frozen=True)
class PartPlan:
    """Part size and count chosen for one upload."""
    part_size: int
    total_parts: int
    
    def last_part_size(self, total_size: int) -> int:
        return total_size - self.part_size * (self.total_parts - 1)


def plan_parts(total_size: int, capabilities: ProviderCapabilities) -> PartPlan:
    """Choose the part size for ``total_size`` bytes within a provider's limits.
    
    Starts at the provider minimum and grows the part size only when the
    minimum would need more parts than the provider accepts.
    
    Raises:
        PartPlanningError: If the size is not positive or no part size fits
            the provider's limits
    """
    if total_size <= 0:
        raise PartPlanningError(
            "Total size must be positive",
            details={"total_size": total_size}
        )
    
    if not capabilities.supports_multipart_upload or capabilities.minimum_part_size <= 0:
        raise PartPlanningError("Storage provider does not support multipart uploads")
    
    if capabilities.maximum_file_size and total_size > capabilities.maximum_file_size:
        raise PartPlanningError(
            f"File size {total_size} exceeds the provider maximum of {capabilities.maximum_file_size} bytes",
            details={"total_size": total_size, "maximum_file_size": capabilities.maximum_file_size}
        )
    
    maximum_size = capabilities.maximum_multipart_size
    if total_size > maximum_size:
        raise PartPlanningError(
            f"File size {total_size} cannot be split into at most "
            f"{capabilities.maximum_part_count} parts of {capabilities.maximum_part_size} bytes",
            details={
                "total_size": total_size,
                "maximum_part_size": capabilities.maximum_part_size,
                "maximum_part_count": capabilities.maximum_part_count,
            }
        )
    
    part_size = capabilities.minimum_part_size
    if _ceil_div(total_size, part_size) > capabilities.maximum_part_count:
        part_size = _ceil_div(total_size, capabilities.maximum_part_count)
    part_size = min(part_size, capabilities.maximum_part_size)
    
    return PartPlan(part_size=part_size, total_parts=_ceil_div(total_size, part_size))
