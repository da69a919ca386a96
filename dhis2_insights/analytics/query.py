from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from dhis2_insights.analytics.errors import InvalidSelectionError
from dhis2_insights.analytics.org_units import OrgUnitResolution


@dataclass(frozen=True)
class AnalyticsQuery:
    dx: List[str]
    pe: List[str]
    ou: str

    def to_request(self) -> Dict[str, Any]:
        return {
            "dx": list(self.dx),
            "pe": self.pe[0] if len(self.pe) == 1 else list(self.pe),
            "ou": self.ou,
        }

    def dimension_params(self) -> List[str]:
        return [
            f"dx:{';'.join(self.dx)}",
            f"pe:{';'.join(self.pe)}",
            f"ou:{self.ou}",
        ]


def build_analytics_query(
    item_ids: Sequence[str],
    periods: str | Sequence[str],
    org_units: OrgUnitResolution | str,
) -> AnalyticsQuery:
    dx = [i for i in item_ids if i]
    if not dx:
        raise InvalidSelectionError("At least one data item is required", dimension="dx")

    pe = [periods] if isinstance(periods, str) else list(periods)
    pe = [p for p in pe if p]
    if not pe:
        raise InvalidSelectionError("At least one period is required", dimension="pe")

    ou = org_units.dimension if isinstance(org_units, OrgUnitResolution) else org_units
    if not ou:
        raise InvalidSelectionError("An organisation unit dimension is required", dimension="ou")

    return AnalyticsQuery(dx=dx, pe=pe, ou=ou)
