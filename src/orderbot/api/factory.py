"""FastAPI application factory."""

from fastapi import FastAPI, Request, Response

from orderbot.domain.authorization import AllowList
from orderbot.domain.order_extractor import OrderExtractor
from orderbot.infra.settings import Settings, get_settings
from orderbot.observability.correlation import CORRELATION_ID_HEADER, correlation_scope
from orderbot.observability.logging import configure_logging
from orderbot.services.order_intake import OrderIntakeService

from .routes import health, webhooks_whatsapp_meta


def build_intake_service(settings: Settings) -> OrderIntakeService:
    """Wire the extractor and whichever writers the settings enable."""
    customer_lookup = None
    order_sink = None
    if settings.database_enabled:
        from orderbot.infra.repositories.customers_repository import PostgresCustomerLookup
        from orderbot.infra.repositories.orders_repository import PostgresOrderSink

        customer_lookup = PostgresCustomerLookup()
        order_sink = PostgresOrderSink()

    sheet_writer = None
    if settings.sheets_enabled:
        from orderbot.infra.sheets import GoogleSheetsWriter, build_sheets_service

        sheet_writer = GoogleSheetsWriter(
            spreadsheet_id=settings.google_sheet_id,
            sheet_names=settings.sheet_names,
            service=build_sheets_service(settings.google_credentials_json),
        )

    extractor = OrderExtractor(
        allow_list=AllowList(settings.authorized_phone_numbers),
        customer_lookup=customer_lookup,
    )
    return OrderIntakeService(extractor, sheet_writer=sheet_writer, order_sink=order_sink)


def create_app(intake: OrderIntakeService | None = None) -> FastAPI:
    """Create the FastAPI app.

    Args:
        intake: Intake service override (tests). If None, built from
            environment settings.

    Returns:
        Configured FastAPI application.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="WhatsApp Order Bot",
        docs_url=None,
        redoc_url=None,
    )
    app.state.intake = intake if intake is not None else build_intake_service(settings)

    # Correlation ID middleware
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        with correlation_scope(request.headers.get(CORRELATION_ID_HEADER)) as cid:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response

    app.include_router(health.router)
    app.include_router(webhooks_whatsapp_meta.router)

    return app
