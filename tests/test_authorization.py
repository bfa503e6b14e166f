"""Tests for the sender allow-list."""

import pytest

from orderbot.domain.authorization import AllowList, is_authorized


@pytest.fixture
def allow_list():
    return AllowList(["60123456789", "+65 9123 4567"])


class TestIsAuthorized:
    @pytest.mark.parametrize(
        "phone",
        ["60123456789", "0123456789", "+60 12-345 6789", "123456789", "91234567", "6591234567"],
    )
    def test_authorized_spellings(self, allow_list, phone):
        assert allow_list.is_authorized(phone)

    def test_unknown_number(self, allow_list):
        assert not allow_list.is_authorized("60199999999")

    def test_country_codes_must_agree(self):
        """Same subscriber digits under a different country code do not match."""
        allow = AllowList(["6591234567"])
        assert not allow.is_authorized("6091234567")

    @pytest.mark.parametrize("phone", [None, "", "abc"])
    def test_empty_or_unparseable(self, allow_list, phone):
        assert not allow_list.is_authorized(phone)

    def test_empty_list_rejects_everyone(self):
        assert not AllowList([]).is_authorized("60123456789")

    def test_module_function(self, allow_list):
        assert is_authorized("0123456789", allow_list)
        assert not is_authorized("0199999999", allow_list)

    def test_contains(self, allow_list):
        assert "0123456789" in allow_list
        assert 123 not in allow_list


class TestAllowListConstruction:
    def test_numbers_are_normalized(self, allow_list):
        assert allow_list.numbers == frozenset({"60123456789", "6591234567"})

    def test_from_csv(self):
        allow = AllowList.from_csv(" 60123456789, ,0126675705,")
        assert len(allow) == 2
        assert allow.is_authorized("60126675705")

    def test_from_csv_empty(self):
        assert len(AllowList.from_csv(None)) == 0
        assert len(AllowList.from_csv("")) == 0
