from models.tabular import ABSENT, TabularBlock

from conftest import iss_block


def test_value_by_column_name():
    block = TabularBlock.from_json(iss_block(["SECID", "LAST"], ["SU26227RMFS7", 98.5]))
    assert block.index_of("LAST") == 1
    assert block.first_row_value("LAST") == 98.5
    assert block.value(0, "SECID") == "SU26227RMFS7"


def test_absent_column_differs_from_null():
    block = TabularBlock.from_json(iss_block(["LAST"], [None]))
    assert block.first_row_value("LAST") is None
    assert block.first_row_value("CLOSEPRICE") is ABSENT
    assert block.index_of("CLOSEPRICE") is None
    assert not ABSENT


def test_empty_block():
    block = TabularBlock.from_json(iss_block(["LAST"]))
    assert block.is_empty
    assert len(block) == 0
    assert block.first_row_value("LAST") is ABSENT


def test_short_row_is_absent():
    block = TabularBlock(["A", "B"], [[1]])
    assert block.value(0, "B") is ABSENT


def test_from_json_rejects_malformed():
    assert TabularBlock.from_json(None) is None
    assert TabularBlock.from_json({"columns": ["A"]}) is None
    assert TabularBlock.from_json({"columns": ["A"], "data": "oops"}) is None
    assert TabularBlock.from_json({"columns": ["A"], "data": [1, 2]}) is None
