"""
Tests for wide-to-long reshaping of cumulative case tables.
"""
import pandas as pd
import pytest

from caserates.errors import MalformedDateColumn
from caserates.reshape import parse_date_column, select_date_columns, wide_to_long


class TestParseDateColumn:
    def test_compact_format(self):
        assert parse_date_column("20200315") == pd.Timestamp("2020-03-15")

    def test_dashed_format(self):
        assert parse_date_column("2020-03-15") == pd.Timestamp("2020-03-15")

    @pytest.mark.parametrize("name", ["abc", "2020315", "15032020x", "20201345"])
    def test_rejects_malformed(self, name):
        with pytest.raises(MalformedDateColumn) as exc:
            parse_date_column(name)
        assert exc.value.column == name


def test_select_date_columns_keeps_digit_prefixed_in_order():
    cols = ["fips", "NAME", "population", "20200102", "20200101", "notes"]
    assert select_date_columns(cols) == ["20200102", "20200101"]


def test_row_count_is_entities_times_dates(wide_cases):
    long_df = wide_to_long(wide_cases)

    assert len(long_df) == 3 * 4
    assert list(long_df.columns) == ["GEOID", "state_name", "population", "date", "cumulative_cases"]
    assert long_df["date"].nunique() == 4


def test_values_land_on_the_right_entity_and_date(wide_cases):
    long_df = wide_to_long(wide_cases)

    row = long_df[(long_df["state_name"] == "Alabama") & (long_df["date"] == "2020-03-16")]
    assert row["cumulative_cases"].tolist() == [12]
    assert row["GEOID"].tolist() == ["01"]
    assert row["population"].tolist() == [100000]


def test_identifier_lookup_is_case_insensitive(wide_cases):
    raw = wide_cases.rename(columns={"NAME": " name ", "fips": "FIPS"})

    long_df = wide_to_long(raw)

    assert set(long_df["state_name"]) == {"Alabama", "Alaska", "California"}


def test_missing_identifier_raises_key_error(wide_cases):
    with pytest.raises(KeyError, match="population"):
        wide_to_long(wide_cases.drop(columns="population"))


def test_bad_date_column_fails_before_reshaping(wide_cases):
    raw = wide_cases.assign(**{"2020-13-01": [1, 2, 3]})

    with pytest.raises(MalformedDateColumn):
        wide_to_long(raw)


def test_non_date_extra_columns_are_ignored(wide_cases):
    raw = wide_cases.assign(notes=["a", "b", "c"])

    long_df = wide_to_long(raw)

    assert "notes" not in long_df.columns
    assert len(long_df) == 12


def test_custom_id_columns():
    raw = pd.DataFrame({"geoid": ["x"], "state": ["Somewhere"], "pop": [10], "2021-01-01": [3]})

    long_df = wide_to_long(raw, {"geoid": "GEOID", "state": "state_name", "pop": "population"})

    assert long_df.iloc[0]["state_name"] == "Somewhere"
    assert long_df.iloc[0]["cumulative_cases"] == 3


def test_fips_read_from_text_keep_leading_zero():
    from dataio.dataverse import read_case_table

    raw = read_case_table(
        b"fips,NAME,population,20200313,20200314\n01,Alabama,100000,10,12\n06,California,200000,20,30\n",
        "cases.csv",
    )

    long_df = wide_to_long(raw)

    assert sorted(set(long_df["GEOID"])) == ["01", "06"]


def test_numeric_fips_are_zero_padded(wide_cases):
    raw = wide_cases.assign(fips=[1, 2, 6])

    long_df = wide_to_long(raw)

    assert sorted(set(long_df["GEOID"])) == ["01", "02", "06"]
