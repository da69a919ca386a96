import pytest

HEADERS = [
    {"name": "dx", "column": "Data", "valueType": "TEXT"},
    {"name": "pe", "column": "Period", "valueType": "TEXT"},
    {"name": "ou", "column": "Organisation unit", "valueType": "TEXT"},
    {"name": "value", "column": "Value", "valueType": "NUMBER"},
]


@pytest.fixture
def make_response():
    def _make(rows, names=None, headers=None):
        return {
            "headers": list(HEADERS if headers is None else headers),
            "rows": [list(r) for r in rows],
            "metaData": {"items": {k: {"name": v} for k, v in (names or {}).items()}},
        }

    return _make


@pytest.fixture
def two_items_three_periods(make_response):
    rows = [
        ("ANC1", "202401", "X", "10"),
        ("ANC1", "202402", "X", "20"),
        ("ANC1", "202403", "X", "30"),
        ("ANC4", "202401", "X", "4"),
        ("ANC4", "202402", "X", "6"),
        ("ANC4", "202403", "X", "11"),
    ]
    names = {
        "ANC1": "ANC 1st visit",
        "ANC4": "ANC 4th visit",
        "202401": "January 2024",
        "202402": "February 2024",
        "202403": "March 2024",
        "X": "District X",
    }
    return make_response(rows, names)
