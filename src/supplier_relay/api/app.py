"""Fábrica da aplicação FastAPI."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from supplier_relay.adapters.wechaty.gateway import WechatyGateway
from supplier_relay.adapters.whatsapp.gateway import WhatsAppGateway
from supplier_relay.ai.factory import create_llm_client
from supplier_relay.api.routes import router
from supplier_relay.application.category_router import CategoryRouter
from supplier_relay.application.completion_waiter import CompletionWaiter
from supplier_relay.application.inquiry_flow import InquiryFlow, InquiryTaskRunner
from supplier_relay.application.reply_dispatcher import ReplyDispatcher
from supplier_relay.application.session_controller import SessionLifecycleController
from supplier_relay.application.summarizer import create_summarizer
from supplier_relay.config.settings import SessionEngineConfig, Settings, get_settings
from supplier_relay.infra.reply_log import ReplyLog, create_reply_recovery
from supplier_relay.infra.routing_table import GroupSessionRoutingTable
from supplier_relay.infra.session_store import create_session_store
from supplier_relay.observability.logging import configure_logging, get_logger
from supplier_relay.observability.middleware import CorrelationIdMiddleware

logger = get_logger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    if settings.wechaty_webhook_url:
        await app.state.wechaty_gateway.register_webhook(settings.wechaty_webhook_url)

    logger.info(
        "service_started",
        extra={
            "environment": settings.environment,
            "summarizer": app.state.session_controller.summarizer.name,
            "whatsapp_mode": app.state.whatsapp_gateway.mode,
        },
    )
    try:
        yield
    finally:
        await app.state.inquiry_runner.shutdown()
        await app.state.session_controller.shutdown()
        await app.state.whatsapp_gateway.close()
        await app.state.wechaty_gateway.close()
        if app.state.llm_client is not None:
            await app.state.llm_client.close()
        reply_log = app.state.reply_recovery
        if isinstance(reply_log, ReplyLog):
            reply_log.close()
        logger.info("service_stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Cria a aplicação FastAPI com o motor de sessões montado."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.service_name, settings.environment)

    validation_errors: list[str] = []
    validation_errors.extend(settings.validate_session_config())
    validation_errors.extend(settings.validate_openai_config())
    validation_errors.extend(settings.validate_llm_service_config())
    validation_errors.extend(settings.validate_whatsapp_config())

    if validation_errors:
        error_msg = "; ".join(validation_errors)
        raise ValueError(f"Configuração inválida: {error_msg}")

    app = FastAPI(title=settings.service_name, version=settings.version, lifespan=_lifespan)
    app.add_middleware(CorrelationIdMiddleware)
    app.include_router(router)

    app.state.settings = settings

    llm_client = create_llm_client(settings)
    engine_config = SessionEngineConfig.from_settings(settings)
    reply_recovery = create_reply_recovery(settings.reply_log_path)
    reply_log = reply_recovery if isinstance(reply_recovery, ReplyLog) else None
    dispatcher = ReplyDispatcher(GroupSessionRoutingTable(), reply_log=reply_log)

    controller = SessionLifecycleController(
        engine_config,
        session_store=create_session_store("memory"),
        dispatcher=dispatcher,
        summarizer=create_summarizer(settings, llm_client),
        reply_recovery=reply_recovery,
    )

    whatsapp_gateway = WhatsAppGateway.from_settings(settings)
    wechaty_gateway = WechatyGateway.from_settings(settings)

    flow = InquiryFlow(
        router=CategoryRouter.from_settings(settings, llm_client),
        controller=controller,
        waiter=CompletionWaiter(controller, engine_config),
        supplier_sender=wechaty_gateway,
        sales_sender=whatsapp_gateway,
        sales_group_id=settings.sales_group_id,
    )

    app.state.llm_client = llm_client
    app.state.reply_recovery = reply_recovery
    app.state.reply_dispatcher = dispatcher
    app.state.session_controller = controller
    app.state.whatsapp_gateway = whatsapp_gateway
    app.state.wechaty_gateway = wechaty_gateway
    app.state.inquiry_runner = InquiryTaskRunner(flow)

    return app
