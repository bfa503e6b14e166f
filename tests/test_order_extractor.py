"""Golden tests for OrderExtractor.

Covers both message formats, authorization, fallbacks and the
repeat-customer lookup.
"""

from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from orderbot.domain.order_extractor import (
    PLACEHOLDER_CUSTOMER_NAME,
    LINE_RULES,
    build_remark,
)
from orderbot.domain.orders import LineItem, OrderFormat, PaymentMethod, ProductKey

from .helpers import (
    AGENT_PHONE,
    FIXED_TODAY,
    SCENARIO_A,
    SCENARIO_B,
    SCENARIO_C,
    make_ctx,
    make_extractor,
)

LABELED_MESSAGE = """Name: Ali Bin Abu
Contact: 012-345 6789
Address: 10, Jalan Tun Razak,
50450 Kuala Lumpur
Payment: bank in
Total: RM150
2w"""


@pytest.fixture
def extractor():
    return make_extractor()


class TestMultilineEnglish:
    """Positional one-field-per-line messages."""

    def test_scenario_a(self, extractor):
        order = extractor.extract(SCENARIO_A, make_ctx())

        assert order is not None
        assert order.format is OrderFormat.MULTILINE
        assert order.order_date == date(2025, 8, 6)
        assert order.total_paid == 256
        assert order.customer_name == "THAN SIEW PHENG"
        assert order.phone_number == "60194419638"
        assert order.address.postcode == "14300"
        assert order.address.state == "Penang"
        assert order.address.city == "Nibong Tebal"
        assert order.address.line == "6 Lorong Vila Indah 7, Nibong Tebal"
        assert order.line_items == [
            LineItem(ProductKey.WASH, 1),
            LineItem(ProductKey.FEMLIFT_30ML, 1, "30ml"),
            LineItem(ProductKey.SPRAY, 1),
            LineItem(ProductKey.WASH_30ML, 1, "30ml"),
        ]
        assert order.payment_method is None
        assert order.is_repeat_customer is False
        assert order.product_code == "1w1f1s1w30ml"
        assert order.remark == "Order from WhatsApp (New Customer) - 1w1f1s1w30ml"
        assert order.message_id == "wamid.TEST001"

    def test_labeled_fields(self, extractor):
        order = extractor.extract(LABELED_MESSAGE, make_ctx())

        assert order is not None
        assert order.customer_name == "Ali Bin Abu"
        assert order.phone_number == "60123456789"
        assert order.payment_method is PaymentMethod.BANK_TRANSFER
        assert order.total_paid == 150
        assert order.line_items == [LineItem(ProductKey.WASH, 2)]
        assert order.address.postcode == "50450"
        assert order.address.state == "Kuala Lumpur"
        assert order.address.city == "Kuala Lumpur"

    def test_contact_label_on_name_line(self, extractor):
        text = "8/8/25\nName: Ali Contact: 0127370668\nJalan Mawar, 81100 jb\n1w"
        order = extractor.extract(text, make_ctx())

        assert order.customer_name == "Ali"
        assert order.phone_number == "60127370668"
        assert order.address.postcode == "81100"

    def test_payment_in_parentheses_after_name(self, extractor):
        order = extractor.extract("8/8/25\nAli Bin Abu (tng)\n0123456789\n1w", make_ctx())

        assert order.customer_name == "Ali Bin Abu"
        assert order.payment_method is PaymentMethod.TNG

    def test_total_after_product_code(self, extractor):
        """A total line below the product code is found by the final pass."""
        text = "8/8/25\nAli\n0123456789\n10 Jalan Mawar, 81100 Johor Bahru\n1w\nRM120"
        order = extractor.extract(text, make_ctx())

        assert order.total_paid == 120
        assert order.line_items == [LineItem(ProductKey.WASH, 1)]

    def test_missing_total_is_zero(self, extractor):
        order = extractor.extract("Ali\n0123456789\n1w", make_ctx())
        assert order.total_paid == 0

    def test_repeat_marker_on_date_line(self, extractor):
        order = extractor.extract("8/8/25 rpt\nAli\n0123456789\n1w", make_ctx())

        assert order.is_repeat_customer is True
        assert order.order_date == date(2025, 8, 8)
        assert "(Repeat Customer)" in order.remark


class TestMultilineChinese:
    def test_scenario_b(self, extractor):
        order = extractor.extract(SCENARIO_B, make_ctx())

        assert order is not None
        assert order.customer_name == "NICOLE CHOW"
        assert order.phone_number == "60126675705"
        assert order.address.postcode == "43300"
        assert order.address.state == "Selangor"
        assert order.address.city == "Seri Kembangan"
        assert order.line_items == [
            LineItem(ProductKey.FEMLIFT_30ML, 2, "30ml"),
            LineItem(ProductKey.WASH_30ML, 1, "30ml"),
        ]
        assert order.remark == "Order from WhatsApp (Sender: CHOW MEI LING) (New Customer) - 2f1w30ml"

    def test_sender_only_is_customer(self, extractor):
        """Without a receiver the remitter is the customer and no Sender tag is added."""
        text = "汇款人名字：CHOW MEI LING\n电话号码：0126675705\n1w"
        order = extractor.extract(text, make_ctx())

        assert order.customer_name == "CHOW MEI LING"
        assert "Sender:" not in order.remark


class TestCondensed:
    def test_scenario_c(self, extractor):
        order = extractor.extract(SCENARIO_C, make_ctx())

        assert order is not None
        assert order.format is OrderFormat.CONDENSED
        assert order.order_date == date(2025, 8, 8)
        assert order.is_repeat_customer is True
        assert order.payment_method is PaymentMethod.COD
        assert order.total_paid == 278
        assert order.customer_name == "Dorcas Koh"
        assert order.phone_number == "60127370668"
        assert order.address.state == "Johor"
        assert order.address.postcode == "81100"
        assert order.address.city == "Taman daya"
        assert order.address.line == "28 jalan sagu 38, Taman daya"
        assert order.line_items == [
            LineItem(ProductKey.FEMLIFT_30ML, 3, "30ml"),
            LineItem(ProductKey.WASH, 1),
        ]
        assert order.remark == "Order from WhatsApp (Repeat Customer) - 3f1w"

    def test_repeat_marker_after_space(self, extractor):
        text = "8/8/25 rpt cod rm278 Dorcas Koh 0127370668 28 jalan sagu 38,Taman daya 81100 jb 3f1w"
        order = extractor.extract(text, make_ctx())

        assert order is not None
        assert order.order_date == date(2025, 8, 8)
        assert order.is_repeat_customer is True
        assert order.payment_method is PaymentMethod.COD
        assert order.total_paid == 278
        assert order.customer_name == "Dorcas Koh"
        assert order.phone_number == "60127370668"

    def test_singapore_order(self, extractor):
        text = "12/9/25 150 Mei Ling 91234567 Blk 123 Tampines St 11 #05-67 Singapore 521123 2f"
        order = extractor.extract(text, make_ctx())

        assert order is not None
        assert order.order_date == date(2025, 9, 12)
        assert order.total_paid == 150
        assert order.customer_name == "Mei Ling"
        assert order.phone_number == "6591234567"
        assert order.currency == "SGD"
        assert order.address.postcode == "521123"
        assert order.address.country == "Singapore"
        assert order.line_items == [LineItem(ProductKey.FEMLIFT_30ML, 2, "30ml")]

    def test_missing_phone_is_not_an_order(self, extractor):
        assert extractor.extract("8/8/25 cod rm100 Ali Jalan Mawar 81100 jb 1w", make_ctx()) is None

    def test_group_name_in_remark(self, extractor):
        order = extractor.extract(SCENARIO_C, make_ctx(group_name="KL Agents"))

        assert order.group_name == "KL Agents"
        assert order.remark == "Order from WhatsApp (Group: KL Agents) (Repeat Customer) - 3f1w"


class TestAuthorizationAndFallbacks:
    def test_unauthorized_sender(self, extractor):
        """Well-formed messages from unknown numbers produce nothing."""
        ctx = make_ctx(sender_phone="60199999999")
        assert extractor.extract(SCENARIO_A, ctx) is None
        assert extractor.extract(SCENARIO_C, ctx) is None

    def test_unauthorized_sender_is_logged_redacted(self, extractor):
        with patch("orderbot.domain.order_extractor.logger") as logger:
            extractor.extract(SCENARIO_A, make_ctx(sender_phone="60199998888"))

        extra = logger.info.call_args.kwargs["extra"]["extra_fields"]
        assert extra == {"sender": "***8888"}

    def test_local_spelling_of_agent_number(self, extractor):
        assert extractor.extract(SCENARIO_A, make_ctx(sender_phone="012-345 6789")) is not None

    @pytest.mark.parametrize("text", ["", "   ", "1w", "hello"])
    def test_too_short(self, extractor, text):
        assert extractor.extract(text, make_ctx()) is None

    def test_none_text(self, extractor):
        assert extractor.extract(None, make_ctx()) is None

    def test_display_name_fallback(self, extractor):
        text = "8/8/25\n0123456789\n10 Jalan Mawar, 81100 Johor Bahru\n1w"

        order = extractor.extract(text, make_ctx(sender_display_name="Agent Amy"))
        assert order.customer_name == "Agent Amy"

        order = extractor.extract(text, make_ctx())
        assert order.customer_name == PLACEHOLDER_CUSTOMER_NAME

    def test_sender_phone_fallback(self, extractor):
        order = extractor.extract("8/8/25\nAli\n10 Jalan Mawar, 81100 Johor Bahru\n1w", make_ctx())
        assert order.phone_number == AGENT_PHONE

    def test_today_when_no_date(self, extractor):
        order = extractor.extract("Ali\n0123456789\n1w", make_ctx())
        assert order.order_date == FIXED_TODAY

    def test_no_address_gives_empty_address(self, extractor):
        order = extractor.extract("Ali\n0123456789\n1w", make_ctx())
        assert order.address.postcode is None
        assert order.address.raw == ""


class TestCustomerHistory:
    """apply_customer_history() and the optional lookup."""

    def test_known_phone_becomes_repeat(self):
        lookup = MagicMock()
        lookup.find_by_phone.return_value = {"id": 7}
        extractor = make_extractor(customer_lookup=lookup)

        order = extractor.apply_customer_history(extractor.extract(SCENARIO_A, make_ctx()))

        lookup.find_by_phone.assert_called_once_with("60194419638")
        assert order.is_repeat_customer is True
        assert order.remark == "Order from WhatsApp (Repeat Customer) - 1w1f1s1w30ml"

    def test_unknown_phone_stays_new(self):
        lookup = MagicMock()
        lookup.find_by_phone.return_value = None
        extractor = make_extractor(customer_lookup=lookup)

        order = extractor.apply_customer_history(extractor.extract(SCENARIO_A, make_ctx()))

        assert order.is_repeat_customer is False
        assert "(New Customer)" in order.remark

    def test_lookup_failure_means_not_repeat(self):
        lookup = MagicMock()
        lookup.find_by_phone.side_effect = RuntimeError("db down")
        extractor = make_extractor(customer_lookup=lookup)

        order = extractor.extract(SCENARIO_A, make_ctx())
        assert extractor.apply_customer_history(order) is order
        assert order.is_repeat_customer is False

    def test_marker_skips_lookup(self):
        lookup = MagicMock()
        extractor = make_extractor(customer_lookup=lookup)

        order = extractor.apply_customer_history(extractor.extract(SCENARIO_C, make_ctx()))

        lookup.find_by_phone.assert_not_called()
        assert order.is_repeat_customer is True

    def test_no_lookup_configured(self, extractor):
        order = extractor.extract(SCENARIO_A, make_ctx())
        assert extractor.apply_customer_history(order) is order

    def test_extract_never_calls_lookup(self):
        lookup = MagicMock()
        extractor = make_extractor(customer_lookup=lookup)

        extractor.extract(SCENARIO_A, make_ctx())

        lookup.find_by_phone.assert_not_called()


class TestBuildRemark:
    def test_minimal(self):
        assert build_remark(None, None, False, "") == "Order from WhatsApp (New Customer)"

    def test_all_parts(self):
        assert (
            build_remark("Group A", "CHOW MEI LING", True, "2f")
            == "Order from WhatsApp (Group: Group A) (Sender: CHOW MEI LING) (Repeat Customer) - 2f"
        )


class TestLineRules:
    def test_rule_names_are_unique(self):
        names = [rule.name for rule in LINE_RULES]
        assert len(names) == len(set(names))

    def test_address_is_the_catch_all(self):
        assert LINE_RULES[-1].name == "address"
