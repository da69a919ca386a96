from __future__ import annotations

import logging
from typing import Any, Dict, List

import requests

from dhis2_insights.analytics.errors import AnalyticsFetchError
from dhis2_insights.analytics.org_units import OrgUnitDescriptor
from dhis2_insights.analytics.query import AnalyticsQuery
from dhis2_insights.config import settings

logger = logging.getLogger(__name__)

CHILD_FIELDS = "children[id,displayName,path,level,parent[id],organisationUnitGroups[id]]"


class Dhis2Client:
    """DHIS2 Web API transport for the analytics and org unit lookups."""

    def __init__(
        self,
        base_url: str | None = None,
        username: str | None = None,
        password: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url if base_url is not None else settings.dhis2_base_url).rstrip("/")
        self.username = username if username is not None else settings.dhis2_username
        self.password = password if password is not None else settings.dhis2_password
        self.token = token if token is not None else settings.dhis2_token
        self.timeout = timeout if timeout is not None else settings.dhis2_timeout

    def is_configured(self) -> bool:
        return bool(self.base_url and (self.token or (self.username and self.password)))

    def fetch_analytics(self, query: AnalyticsQuery) -> Dict[str, Any]:
        payload = self._get(
            "analytics",
            params={
                "dimension": query.dimension_params(),
                "skipMeta": "false",
                "includeNumDen": "true",
            },
        )
        for key in ("headers", "rows"):
            payload.setdefault(key, [])
        payload.setdefault("metaData", {"items": {}})
        return payload

    def fetch_children(self, unit_id: str) -> List[OrgUnitDescriptor]:
        payload = self._get(f"organisationUnits/{unit_id}", params={"fields": CHILD_FIELDS})
        children = []
        for child in payload.get("children") or []:
            parent = child.get("parent") or {}
            children.append(
                OrgUnitDescriptor(
                    id=child.get("id", ""),
                    display_name=child.get("displayName", ""),
                    path=child.get("path", ""),
                    level=child.get("level"),
                    parent=parent.get("id") or unit_id,
                    groups=[g["id"] for g in child.get("organisationUnitGroups") or [] if g.get("id")],
                )
            )
        return children

    def _get(self, resource: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.is_configured():
            raise AnalyticsFetchError("DHIS2 connection is not configured")

        headers = {"Accept": "application/json"}
        auth = None
        if self.token:
            headers["Authorization"] = f"ApiToken {self.token}"
        else:
            auth = (self.username, self.password)

        url = f"{self.base_url}/api/{resource}"
        try:
            response = requests.get(url, params=params, headers=headers, auth=auth, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            logger.error("DHIS2 request to %s failed with status %s", resource, status)
            raise AnalyticsFetchError(f"Failed to fetch data: {exc}", status_code=status) from exc
        except (requests.RequestException, ValueError) as exc:
            logger.error("DHIS2 request to %s failed: %s", resource, exc)
            raise AnalyticsFetchError(f"Failed to fetch data: {exc}") from exc

        if not isinstance(payload, dict):
            logger.error("DHIS2 request to %s returned %s instead of an object", resource, type(payload).__name__)
            raise AnalyticsFetchError(f"Failed to fetch data: unexpected {type(payload).__name__} payload from {resource}")
        return payload
