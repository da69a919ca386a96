import logging

import pytest

from dhis2_insights.analytics.errors import InvalidSelectionError
from dhis2_insights.analytics.org_units import OrgUnitDescriptor, OrgUnitResolver, OrgUnitSelection


class FakeOrgUnitSource:
    def __init__(self, children=None):
        self.children = children or {}
        self.calls = []

    def fetch_children(self, unit_id):
        self.calls.append(unit_id)
        return self.children.get(unit_id, [])


def _children():
    return [
        OrgUnitDescriptor(id="c1", display_name="Clinic One", path="/X/c1", level=3, parent="X"),
        OrgUnitDescriptor(id="c2", display_name="Clinic Two", path="/X/c2", level=3, parent="X"),
    ]


def test_concrete_unit_without_children_flag():
    source = FakeOrgUnitSource({"X": _children()})
    resolution = OrgUnitResolver(source).resolve(OrgUnitSelection(id="X", display_name="District X"))
    assert resolution.dimension == "X"
    assert resolution.multi_org_unit_mode is False
    assert resolution.child_units == []
    assert source.calls == []


def test_concrete_unit_expands_children():
    source = FakeOrgUnitSource({"X": _children()})
    resolution = OrgUnitResolver(source).resolve(OrgUnitSelection(id="X", include_children=True))
    assert resolution.dimension == "c1;c2"
    assert resolution.multi_org_unit_mode is True
    assert [c.id for c in resolution.child_units] == ["c1", "c2"]
    assert resolution.known_names() == {"c1": "Clinic One", "c2": "Clinic Two"}
    assert source.calls == ["X"]


def test_unit_without_children_degrades_to_single_unit(caplog):
    source = FakeOrgUnitSource()
    with caplog.at_level(logging.WARNING):
        resolution = OrgUnitResolver(source).resolve(OrgUnitSelection(id="X", include_children=True))
    assert resolution.dimension == "X"
    assert resolution.multi_org_unit_mode is False
    assert "no child units" in caplog.text


@pytest.mark.parametrize(
    "token,multi",
    [
        ("USER_ORGUNIT", False),
        ("USER_ORGUNIT_CHILDREN", True),
        ("USER_ORGUNIT_GRANDCHILDREN", True),
    ],
)
def test_special_tokens_never_fetch_metadata(token, multi):
    source = FakeOrgUnitSource()
    selection = OrgUnitSelection(id=token, include_children=True)
    resolution = OrgUnitResolver(source).resolve(selection)
    assert selection.is_special
    assert resolution.dimension == token
    assert resolution.multi_org_unit_mode is multi
    assert source.calls == []


def test_blank_unit_id_is_rejected():
    with pytest.raises(InvalidSelectionError) as excinfo:
        OrgUnitResolver(FakeOrgUnitSource()).resolve(OrgUnitSelection(id="  "))
    assert excinfo.value.dimension == "ou"
