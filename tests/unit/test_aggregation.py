from __future__ import annotations

from shipment_inspect.models.rollup import RollupRecord, completion_percent
from shipment_inspect.services import aggregation


def _figures(records):
    return [
        (r.group_key, r.total, r.finished_count, r.remaining_count, r.completion_percent) for r in records
    ]


def test_aggregate_by_container(make_row):
    rows = [
        make_row(Container="1", REMARKS="Done"),
        make_row(Container="1", REMARKS=""),
        make_row(Container="2", REMARKS="Done"),
    ]
    records = aggregation.aggregate(rows, "Container")
    assert _figures(records) == [
        ("1", 2, 1, 1, 50),
        ("2", 1, 1, 0, 100),
        ("ALL", 3, 2, 1, 67),
    ]


def test_aggregate_empty_yields_only_all():
    records = aggregation.aggregate([], "Container")
    assert records == [RollupRecord(group_key="ALL", total=0, finished_count=0)]
    assert records[0].completion_percent == 0
    assert records[0].is_all


def test_all_record_is_sum_of_groups(make_row):
    rows = [make_row(ContainerNum=str(i % 3), REMARKS="done" if i % 2 else "") for i in range(10)]
    records = aggregation.container_rollup(rows)
    groups, all_rec = records[:-1], records[-1]
    assert all_rec.total == sum(r.total for r in groups) == 10
    assert all_rec.finished_count == sum(r.finished_count for r in groups)


def test_blank_container_groups_under_na(make_row):
    rows = [make_row(ContainerNum=""), make_row(ContainerNum="  "), make_row(ContainerNum="5")]
    records = aggregation.container_rollup(rows)
    assert [(r.group_key, r.total) for r in records] == [("5", 1), ("NA", 2), ("ALL", 3)]


def test_blank_factory_groups_under_unknown(make_row):
    rows = [make_row(Factory=""), make_row(Factory="F200", REMARKS="Done")]
    records = aggregation.factory_rollup(rows)
    assert [(r.group_key, r.finished_count) for r in records] == [("F200", 1), ("UNKNOWN", 0), ("ALL", 1)]


def test_group_keys_sorted_lexicographically(make_row):
    rows = [make_row(ContainerNum=c) for c in ["10", "2", "1"]]
    assert [r.group_key for r in aggregation.container_rollup(rows)] == ["1", "10", "2", "ALL"]


def test_callable_group_by(make_row):
    rows = [make_row(BoxName="Alpha"), make_row(BoxName="alpha")]
    records = aggregation.aggregate(rows, lambda r: r.text("BoxName").upper())
    assert [(r.group_key, r.total) for r in records] == [("ALPHA", 2), ("ALL", 2)]


def test_completion_uses_done_rule_only(make_row):
    rows = [make_row(ContainerNum="1", REMARKS="in progress"), make_row(ContainerNum="1", REMARKS="DONE")]
    assert aggregation.container_rollup(rows)[0].finished_count == 1


def test_completion_percent_rounds_half_up():
    assert completion_percent(1, 8) == 13  # 12.5
    assert completion_percent(1, 200) == 1  # 0.5
    assert completion_percent(2, 3) == 67
    assert completion_percent(1, 3) == 33
    assert completion_percent(0, 0) == 0
    assert completion_percent(5, 5) == 100


def test_summary_restricted_to_priority(make_row):
    rows = [
        make_row(Factory="AIO", REMARKS="Done"),
        make_row(Factory="F100"),
        make_row(Factory="F200", REMARKS="Done"),
        make_row(Factory="F200"),
        make_row(Factory="F999", REMARKS="Done"),
        make_row(Factory=""),
    ]
    records = aggregation.summary_rollup(rows, ("F200", "F100", "AIO"))
    assert _figures(records) == [
        ("F200", 2, 1, 1, 50),
        ("F100", 1, 0, 1, 0),
        ("AIO", 1, 1, 0, 100),
        ("ALL", 4, 2, 2, 50),
    ]


def test_summary_skips_priority_factories_without_rows(make_row):
    records = aggregation.summary_rollup([make_row(Factory="F100")], ("F200", "F100", "AIO"))
    assert [r.group_key for r in records] == ["F100", "ALL"]


def test_factory_analytics_in_first_appearance_order(make_row):
    rows = [
        make_row(Factory="F100", ContainerNum="2"),
        make_row(Factory="", ContainerNum="1"),
        make_row(Factory="F100", ContainerNum="1", REMARKS="done"),
    ]
    result = aggregation.factory_analytics(rows)
    assert list(result) == ["F100", "UNKNOWN"]
    assert _figures(result["F100"]) == [("1", 1, 1, 0, 100), ("2", 1, 0, 1, 0), ("ALL", 2, 1, 1, 50)]


def test_status_and_pack_counts(make_row):
    rows = [
        make_row(REMARKS="Done", ItemCount=1),
        make_row(REMARKS="in progress", ItemCount=3),
        make_row(REMARKS="", ItemCount=""),
        make_row(REMARKS="??", ItemCount="2"),
    ]
    counts = aggregation.status_counts(rows)
    assert (counts.total, counts.completed, counts.in_progress, counts.not_started) == (4, 1, 1, 2)
    assert counts.remaining == 3
    assert counts.completion_percent == 25
    packs = aggregation.pack_counts(rows)
    assert (packs.multipack, packs.normal) == (2, 2)
