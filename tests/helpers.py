"""Shared test helper functions for order bot tests.

Regular functions (not fixtures), importable from conftest.py and from
individual test files.
"""

from __future__ import annotations

from datetime import date

from orderbot.domain.authorization import AllowList
from orderbot.domain.order_extractor import OrderExtractor
from orderbot.domain.orders import MessageContext

AGENT_PHONE = "60123456789"
FIXED_TODAY = date(2025, 1, 2)

SCENARIO_A = """6/8/2025
total：256
THAN SIEW PHENG
019-4419638
6 Lorong Vila Indah 7,
14300 Nibong Tebal,
Pulau Pinang.
1w1f1s1w30ml"""

SCENARIO_B = """汇款人名字：CHOW MEI LING
收件人名字：NICOLE CHOW
电话号码：0126675705
地址：No 8, Jalan Indah 3, Taman Universiti Indah,
43300 Seri Kembangan, Selangor.
2f1w30ml"""

SCENARIO_C = (
    "8/8/25.rpt Cod rm278 Dorcas Koh (cod) 0127370668 "
    "28 jalan sagu 38,Taman daya 81100 jb 3f1w"
)


def make_ctx(
    sender_phone: str = AGENT_PHONE,
    sender_display_name: str | None = None,
    group_name: str | None = None,
    message_id: str | None = "wamid.TEST001",
) -> MessageContext:
    return MessageContext(
        sender_phone=sender_phone,
        sender_display_name=sender_display_name,
        group_name=group_name,
        message_id=message_id,
    )


def make_extractor(customer_lookup=None, numbers=(AGENT_PHONE,)) -> OrderExtractor:
    return OrderExtractor(
        allow_list=AllowList(numbers),
        customer_lookup=customer_lookup,
        today=lambda: FIXED_TODAY,
    )


def meta_payload(
    text: str | None = "hello",
    sender: str = AGENT_PHONE,
    message_id: str = "wamid.TEST001",
    profile_name: str | None = "Agent Amy",
    message_type: str = "text",
) -> dict:
    """Build a Meta Cloud API webhook payload with one inbound message."""
    message: dict = {
        "from": sender,
        "id": message_id,
        "timestamp": "1754611200",
        "type": message_type,
    }
    if message_type == "text":
        message["text"] = {"body": text}

    value: dict = {
        "messaging_product": "whatsapp",
        "metadata": {"display_phone_number": "60300000000", "phone_number_id": "123456789"},
        "messages": [message],
    }
    if profile_name is not None:
        value["contacts"] = [{"profile": {"name": profile_name}, "wa_id": sender}]

    return {
        "object": "whatsapp_business_account",
        "entry": [{"id": "WABA_ID", "changes": [{"value": value, "field": "messages"}]}],
    }
