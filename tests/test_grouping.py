import pytest

from groupagg.grouping import (
    group_global_local,
    group_hashmap,
    group_partitioning,
    group_simple_array,
    group_two_level,
    group_worker_pool,
    main,
    merge_tables,
    partition_hash,
    sort_and_group,
)
from groupagg.linear_probing import HashTableWithLinearProbing
from groupagg.phones import GroupByOsPhone, map_phone

HEADER = [
    "id", "brand_name", "model_name", "os", "popularity", "best_price",
    "lowest_price", "highest_price", "sellers_amount", "screen_size",
    "memory_size", "battery_size", "release_date", "bucket_id",
]


def row(index, os_name, popularity):
    return [
        str(index), "Brand", f"Model{index}", os_name, str(popularity),
        "100.0", "90.0", "110.0", "3", "6.1", "64.0", "3000.0", "10-2020", "0",
    ]


def dataset(count):
    """Header plus `count` rows cycling through three systems and one blank OS."""
    systems = ["Android", "iOS", "KaiOS", ""]
    return [HEADER] + [row(i, systems[i % 4], i + 1) for i in range(count)]


def totals(records):
    result = {}
    for record in records[1:]:
        if record[3]:
            result[record[3]] = result.get(record[3], 0) + int(record[4])
    return result


def as_dict(groups):
    return {group.os: group.popularity for group in groups}


SMALL = [HEADER, row(1, "Android", 5), row(2, "iOS", 3), row(3, "Android", 2), row(4, "", 7)]


def test_sort_and_group_descending_runs():
    phones = [map_phone(record) for record in SMALL[1:]]
    assert sort_and_group(phones) == [
        GroupByOsPhone("iOS", 3),
        GroupByOsPhone("Android", 7),
    ]


def test_sort_and_group_empty_input_yields_empty_group():
    assert sort_and_group([]) == [GroupByOsPhone("", 0)]


def test_group_simple_array():
    assert group_simple_array(SMALL) == [
        GroupByOsPhone("iOS", 3),
        GroupByOsPhone("Android", 7),
    ]


def test_group_hashmap_sums_and_skips_blank_os():
    assert as_dict(group_hashmap(SMALL)) == {"Android": 7, "iOS": 3}


def test_group_worker_pool_single_worker():
    assert as_dict(group_worker_pool(SMALL, 1)) == {"Android": 7, "iOS": 3}


def test_group_worker_pool_skips_first_record_of_each_chunk():
    # 5 records, 2 workers: chunks [header, r1] and [r2, r3, r4]; r2 is skipped.
    assert as_dict(group_worker_pool(SMALL, 2)) == {"Android": 7}


def test_group_worker_pool_rejects_zero_workers():
    with pytest.raises(ValueError):
        group_worker_pool(SMALL, 0)


def test_group_global_local_one_block():
    records = dataset(24)
    assert as_dict(group_global_local(records)) == totals(records)


def test_group_global_local_drops_partial_block():
    records = dataset(50)
    assert as_dict(group_global_local(records)) == totals(records[:49])


def test_group_global_local_without_full_block():
    assert group_global_local(dataset(23)) == []


def test_group_two_level_many_blocks():
    records = dataset(96)
    assert as_dict(group_two_level(records)) == totals(records)


def test_group_two_level_matches_hashmap():
    records = dataset(48)
    assert as_dict(group_two_level(records)) == as_dict(group_hashmap(records))


@pytest.mark.parametrize("key", ["Android", "iOS", "KaiOS", "Symbian"])
def test_group_partitioning_single_key(key):
    records = [HEADER] + [row(i, key, 2) for i in range(24)]
    expected = {} if partition_hash(key, 64) == 0 else {key: 48}
    assert as_dict(group_partitioning(records)) == expected


def test_group_partitioning_reports_bucket_under_first_key():
    seen = {}
    pair = None
    for i in range(400):
        name = f"os{i}"
        bucket = partition_hash(name, 64)
        if bucket == 0:
            continue
        if bucket in seen:
            pair = (seen[bucket], name)
            break
        seen[bucket] = name
    assert pair is not None
    first, second = pair
    records = [HEADER] + [row(i, first, 1) for i in range(12)] + [
        row(i, second, 10) for i in range(12, 24)
    ]
    assert as_dict(group_partitioning(records)) == {first: 132}


def test_group_partitioning_does_not_modify_input():
    records = [HEADER] + [row(i, "Android", 1) for i in range(24)]
    group_partitioning(records)
    assert all(record[13] == "0" for record in records[1:])


def test_partition_hash_range_and_determinism():
    for i in range(100):
        value = partition_hash(f"key{i}", 64)
        assert 0 <= value <= 64
        assert value == partition_hash(f"key{i}", 64)


def test_partition_hash_uses_first_eight_bytes():
    assert partition_hash("abcdefgh1", 64) == partition_hash("abcdefgh2", 64)


def test_partition_hash_rejects_empty_key():
    with pytest.raises(ValueError):
        partition_hash("", 64)


def test_partition_hash_rejects_negative_buckets():
    with pytest.raises(ValueError):
        partition_hash("Android", -1)


def test_merge_tables_sums_overlapping_keys():
    first = HashTableWithLinearProbing()
    first.put("Android", 4)
    first.put("iOS", 1)
    second = HashTableWithLinearProbing()
    second.put("Android", 6)
    second.put("KaiOS", 2)
    merged = merge_tables([first, second])
    assert {cell.key: cell.value for cell in merged} == {"Android": 10, "iOS": 1, "KaiOS": 2}
    assert first.get("Android").value == 4


def test_merge_tables_empty():
    assert len(merge_tables([])) == 0


def test_main_prints_groups(tmp_path, capsys):
    path = tmp_path / "phones.csv"
    path.write_text("\n".join(",".join(record) for record in SMALL) + "\n", encoding="utf-8")
    assert main([str(path), "--strategy", "hashmap"]) == 0
    out = capsys.readouterr().out
    assert "Popularity 7 for group Android" in out
    assert "Popularity 3 for group iOS" in out


def test_main_simple_array_order(tmp_path, capsys):
    path = tmp_path / "phones.csv"
    path.write_text("\n".join(",".join(record) for record in SMALL) + "\n", encoding="utf-8")
    assert main([str(path), "--strategy", "simple-array"]) == 0
    lines = [line for line in capsys.readouterr().out.splitlines() if line]
    assert lines == ["Popularity 3 for group iOS", "Popularity 7 for group Android"]