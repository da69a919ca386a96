from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Protocol

from dhis2_insights.analytics.errors import InvalidSelectionError

logger = logging.getLogger(__name__)

USER_ORGUNIT = "USER_ORGUNIT"
USER_ORGUNIT_CHILDREN = "USER_ORGUNIT_CHILDREN"
USER_ORGUNIT_GRANDCHILDREN = "USER_ORGUNIT_GRANDCHILDREN"

SPECIAL_ORG_UNITS = {USER_ORGUNIT, USER_ORGUNIT_CHILDREN, USER_ORGUNIT_GRANDCHILDREN}
MULTI_UNIT_TOKENS = {USER_ORGUNIT_CHILDREN, USER_ORGUNIT_GRANDCHILDREN}

SPECIAL_ORG_UNIT_NAMES = {
    USER_ORGUNIT: "User organisation unit",
    USER_ORGUNIT_CHILDREN: "User sub-units",
    USER_ORGUNIT_GRANDCHILDREN: "User sub-x2-units",
}


@dataclass(frozen=True)
class OrgUnitDescriptor:
    id: str
    display_name: str
    path: str = ""
    level: int | None = None
    parent: str | None = None
    groups: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class OrgUnitSelection:
    id: str
    display_name: str = ""
    path: str = ""
    include_children: bool = False

    @property
    def is_special(self) -> bool:
        return self.id in SPECIAL_ORG_UNITS


@dataclass(frozen=True)
class OrgUnitResolution:
    dimension: str
    multi_org_unit_mode: bool
    child_units: List[OrgUnitDescriptor] = field(default_factory=list)

    def known_names(self) -> dict[str, str]:
        return {unit.id: unit.display_name for unit in self.child_units if unit.display_name}


class OrgUnitMetadataSource(Protocol):
    def fetch_children(self, unit_id: str) -> List[OrgUnitDescriptor]:
        ...


class OrgUnitResolver:
    def __init__(self, metadata_source: OrgUnitMetadataSource) -> None:
        self.metadata_source = metadata_source

    def resolve(self, selection: OrgUnitSelection) -> OrgUnitResolution:
        unit_id = (selection.id or "").strip()
        if not unit_id:
            raise InvalidSelectionError("Organisation unit must have an id", dimension="ou")

        if unit_id in SPECIAL_ORG_UNITS:
            # Expansion happens server-side; only flag that several ou values will come back.
            return OrgUnitResolution(dimension=unit_id, multi_org_unit_mode=unit_id in MULTI_UNIT_TOKENS)

        if not selection.include_children:
            return OrgUnitResolution(dimension=unit_id, multi_org_unit_mode=False)

        children = [c for c in self.metadata_source.fetch_children(unit_id) if c.id]
        if not children:
            logger.warning(
                "Organisation unit %s (%s) has no child units, falling back to single unit analysis",
                unit_id,
                selection.display_name or unit_id,
            )
            return OrgUnitResolution(dimension=unit_id, multi_org_unit_mode=False)

        logger.debug("Expanded organisation unit %s into %d child units", unit_id, len(children))
        return OrgUnitResolution(
            dimension=";".join(c.id for c in children),
            multi_org_unit_mode=True,
            child_units=children,
        )
