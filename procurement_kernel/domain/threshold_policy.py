"""
Threshold policy (``procurement_kernel.domain.threshold_policy``).

Responsibility
--------------
Maps a request's total amount to the ordered approval levels it must pass.
Promotion to a higher tier is inclusive: an amount equal to a threshold
already requires that threshold's level.

    amount <  area                -> (AREA_LEAD,)
    area   <= amount < executive  -> (AREA_LEAD, EXECUTIVE)
    amount >= executive           -> (AREA_LEAD, EXECUTIVE, TREASURY)

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.  Thresholds are
supplied by the caller (see ``procurement_config``); this module never
reads configuration itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from procurement_kernel.domain.stages import ApprovalLevel
from procurement_kernel.exceptions import InvalidThresholdsError


@dataclass(frozen=True)
class ApprovalThresholds:
    """Configured monetary boundaries between approval tiers.

    Guarantees: ``0 <= area <= executive`` once constructed.
    """

    area: Decimal
    executive: Decimal

    def __post_init__(self) -> None:
        area = Decimal(str(self.area))
        executive = Decimal(str(self.executive))
        if area < 0 or executive < 0 or area > executive:
            raise InvalidThresholdsError(area, executive)
        object.__setattr__(self, "area", area)
        object.__setattr__(self, "executive", executive)


def required_levels(
    amount: Decimal,
    thresholds: ApprovalThresholds,
) -> tuple[ApprovalLevel, ...]:
    """Return the approval levels required for ``amount``. Never empty."""
    if amount < thresholds.area:
        return (ApprovalLevel.AREA_LEAD,)
    if amount < thresholds.executive:
        return (ApprovalLevel.AREA_LEAD, ApprovalLevel.EXECUTIVE)
    return (
        ApprovalLevel.AREA_LEAD,
        ApprovalLevel.EXECUTIVE,
        ApprovalLevel.TREASURY,
    )
