import pytest

from groupagg.phones import (
    GroupByBrandPhone,
    GroupByOsPhone,
    Phone,
    map_phone,
    map_record,
    read_records,
)

SAMPLE = [
    "7",
    "Acme",
    "Rocket X",
    "Android",
    "412",
    "300",
    "250",
    "350",
    "12",
    "6",
    "128",
    "4000",
    "10-2020",
    "3",
]


def test_map_phone_reads_all_fields():
    phone = map_phone(SAMPLE)
    assert phone.id == 7
    assert phone.brand_name == "Acme"
    assert phone.model_name == "Rocket X"
    assert phone.os == "Android"
    assert phone.popularity == 412
    assert phone.best_price == 300.0
    assert phone.lowest_price == 250.0
    assert phone.highest_price == 350.0
    assert phone.sellers_amount == 12
    assert phone.screen_size == 6.0
    assert phone.memory_size == 128.0
    assert phone.battery_size == 4000.0
    assert phone.release_date == "10-2020"
    assert phone.bucket_id == 3


def test_map_record_round_trip():
    assert map_record(map_phone(SAMPLE)) == ",".join(SAMPLE)


def test_map_record_truncates_floats():
    record = list(SAMPLE)
    record[9] = "6.7"
    line = map_record(map_phone(record))
    assert line.split(",")[9] == "6"


def test_unparsable_numbers_become_zero():
    record = list(SAMPLE)
    record[0] = ""
    record[4] = "many"
    record[5] = "n/a"
    record[13] = " 5"
    phone = map_phone(record)
    assert phone.id == 0
    assert phone.popularity == 0
    assert phone.best_price == 0.0
    assert phone.bucket_id == 0


def test_short_record_is_rejected():
    with pytest.raises(ValueError):
        map_phone(SAMPLE[:5])


def test_group_types_hold_values():
    by_os = GroupByOsPhone(os="iOS", popularity=5)
    by_brand = GroupByBrandPhone(brand_name="Acme", popularity=9)
    assert (by_os.os, by_os.popularity) == ("iOS", 5)
    assert (by_brand.brand_name, by_brand.popularity) == ("Acme", 9)


def test_phone_equality_follows_fields():
    assert map_phone(SAMPLE) == map_phone(list(SAMPLE))
    other = list(SAMPLE)
    other[3] = "iOS"
    assert map_phone(SAMPLE) != map_phone(other)
    assert isinstance(map_phone(other), Phone) and map_phone(other).os == "iOS"


def test_read_records(tmp_path):
    path = tmp_path / "phones.csv"
    header = ",".join(f"c{n}" for n in range(14))
    path.write_text(header + "\n" + ",".join(SAMPLE) + "\n\n", encoding="utf-8")
    records = read_records(path)
    assert len(records) == 2
    assert records[0][0] == "c0"
    assert records[1] == SAMPLE


def test_read_records_quoted_field(tmp_path):
    path = tmp_path / "phones.csv"
    row = list(SAMPLE)
    row[2] = '"Rocket, Pro"'
    path.write_text(",".join(row) + "\n", encoding="utf-8")
    records = read_records(path)
    assert records[0][2] == "Rocket, Pro"
    assert len(records[0]) == 14


def test_read_records_inconsistent_fields(tmp_path):
    path = tmp_path / "phones.csv"
    path.write_text("a,b,c\n1,2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_records(path)


def test_read_records_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_records(tmp_path / "absent.csv")