from __future__ import annotations

import pytest

from shipment_inspect.services.normalizer import normalize_header


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Box No", "boxno"),
        ("  ContainerNum  ", "containernum"),
        ("REMARKS", "remarks"),
        ("Item Count", "itemcount"),
        ("Box-Name (EN)", "boxnameen"),
        ("box_name", "box_name"),
        ("№ / #", ""),
        ("", ""),
    ],
)
def test_normalize_header(raw, expected):
    assert normalize_header(raw) == expected


def test_normalize_header_none_and_numbers():
    assert normalize_header(None) == ""
    assert normalize_header(123) == "123"


def test_normalize_header_is_idempotent():
    once = normalize_header(" Inspection Status! ")
    assert normalize_header(once) == once
