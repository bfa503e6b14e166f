"""Order intake service - one chat message in, at most one order out.

Flow per message:
1. extract (allow-list check + parsing, no I/O)
2. repeat-customer lookup (at most once)
3. persist to the relational store (optional); a message stored before
   (webhook redelivery) stops here
4. append to Google Sheets (optional)

Writer failures are logged and reported in the result, never raised:
the webhook must still answer 200. A failing store does not block the
sheet append.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from orderbot.domain.order_extractor import OrderExtractor
from orderbot.domain.orders import ExtractedOrder, MessageContext, OrderSink, SheetWriter
from orderbot.observability.redaction import safe_log_context

logger = logging.getLogger(__name__)

# ── Rejection reasons ────────────────────────────────────

REASON_UNAUTHORIZED = "unauthorized"
REASON_NOT_AN_ORDER = "not_an_order"
REASON_DUPLICATE = "duplicate"


@dataclass(frozen=True)
class IntakeResult:
    accepted: bool
    order: ExtractedOrder | None = None
    reason: str | None = None
    sheet_written: bool = False
    sheet_error: str | None = None
    stored: bool = False
    store_error: str | None = None


class OrderIntakeService:
    def __init__(
        self,
        extractor: OrderExtractor,
        sheet_writer: SheetWriter | None = None,
        order_sink: OrderSink | None = None,
    ):
        self._extractor = extractor
        self._sheet_writer = sheet_writer
        self._order_sink = order_sink

    def handle(self, text: str, ctx: MessageContext) -> IntakeResult:
        """Run one message through extraction and the configured writers."""
        if not self._extractor.allow_list.is_authorized(ctx.sender_phone):
            return IntakeResult(accepted=False, reason=REASON_UNAUTHORIZED)

        order = self._extractor.extract(text, ctx)
        if order is None:
            return IntakeResult(accepted=False, reason=REASON_NOT_AN_ORDER)

        order = self._extractor.apply_customer_history(order)

        stored, duplicate, store_error = self._store(order)
        if duplicate:
            logger.info(
                "order already stored; sheet append skipped",
                extra={"extra_fields": safe_log_context(message_id=ctx.message_id)},
            )
            return IntakeResult(accepted=False, order=order, reason=REASON_DUPLICATE)

        sheet_written, sheet_error = self._write_sheet(order)

        logger.info(
            "order intake complete",
            extra={
                "extra_fields": safe_log_context(
                    message_id=ctx.message_id,
                    sheet_written=sheet_written,
                    stored=stored,
                    repeat=order.is_repeat_customer,
                )
            },
        )
        return IntakeResult(
            accepted=True,
            order=order,
            sheet_written=sheet_written,
            sheet_error=sheet_error,
            stored=stored,
            store_error=store_error,
        )

    def _write_sheet(self, order: ExtractedOrder) -> tuple[bool, str | None]:
        if self._sheet_writer is None:
            return False, None
        try:
            self._sheet_writer.append_order(order)
        except Exception as e:
            logger.exception("sheet append failed")
            return False, str(e)
        return True, None

    def _store(self, order: ExtractedOrder) -> tuple[bool, bool, str | None]:
        """Returns (stored, duplicate, error)."""
        if self._order_sink is None:
            return False, False, None
        try:
            inserted = self._order_sink.save_order(order)
        except Exception as e:
            logger.exception("order store failed")
            return False, False, str(e)
        if not inserted:
            return False, True, None
        return True, False, None
