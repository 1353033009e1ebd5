"""Rotas HTTP: webhooks de vendas (WhatsApp) e fornecedores (WeChat)."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    HTTPException,
    Query,
    Request,
    Response,
    status,
)

from supplier_relay.adapters.wechaty.normalizer import (
    WeChatPayload,
    format_forward_message,
    parse_wechat_payload,
)
from supplier_relay.adapters.whatsapp.gateway import WhatsAppGateway
from supplier_relay.adapters.whatsapp.normalizer import extract_sales_messages
from supplier_relay.adapters.whatsapp.signature import check_webhook_signature
from supplier_relay.api.dependencies import (
    get_inquiry_runner,
    get_reply_dispatcher,
    get_session_controller,
    get_settings,
    get_whatsapp_gateway,
)
from supplier_relay.application.inquiry_flow import InquiryTaskRunner
from supplier_relay.application.reply_dispatcher import ReplyDispatcher
from supplier_relay.application.session_controller import SessionLifecycleController
from supplier_relay.application.validation import validate_session_id
from supplier_relay.config.settings import Settings
from supplier_relay.observability.logging import get_logger
from supplier_relay.observability.middleware import get_correlation_id

logger = get_logger(__name__)

router = APIRouter()


async def _read_json(request: Request) -> Any:
    raw_body = await request.body()
    try:
        return json.loads(raw_body or b"{}")
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_json") from exc


@router.get("/health")
def health(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    """Healthcheck simples."""
    return {"status": "ok", "service": settings.service_name, "version": settings.version}


@router.get("/webhooks/whatsapp")
def whatsapp_verify(
    hub_mode: str | None = Query(None, alias="hub.mode"),
    hub_verify_token: str | None = Query(None, alias="hub.verify_token"),
    hub_challenge: str | None = Query(None, alias="hub.challenge"),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Handshake de verificação do webhook (Business API)."""
    if not settings.whatsapp_verify_token:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="missing_verify_token",
        )

    if hub_mode != "subscribe" or hub_verify_token != settings.whatsapp_verify_token:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="verification_failed",
        )

    logger.info("whatsapp_webhook_verified")
    return Response(content=hub_challenge or "", media_type="text/plain")


@router.post("/webhooks/whatsapp")
async def whatsapp_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    runner: InquiryTaskRunner = Depends(get_inquiry_runner),
) -> dict[str, Any]:
    """Recebe cotações de vendas; o fluxo roda em background."""
    raw_body = await request.body()
    signature = check_webhook_signature(raw_body, request.headers, settings.whatsapp_app_secret)
    if not signature.valid:
        logger.warning("whatsapp_signature_rejected", extra={"reason": signature.reason})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_signature")

    payload = await _read_json(request)
    messages = extract_sales_messages(payload)
    correlation_id = get_correlation_id()

    for message in messages:
        logger.info(
            "whatsapp_inquiry_received",
            extra={"message_id": message.message_id, "message_length": len(message.text)},
        )
        runner.submit(message, correlation_id)

    return {
        "ok": True,
        "status": "accepted" if messages else "ignored",
        "accepted": len(messages),
        "correlation_id": correlation_id,
    }


@router.get("/webhooks/wechat")
def wechat_webhook_check() -> dict[str, str]:
    """Resposta imediata usada pelo serviço Wechaty ao registrar o webhook."""
    return {
        "status": "ok",
        "message": "Webhook endpoint is active",
        "timestamp": datetime.now(tz=UTC).isoformat(),
    }


async def _process_wechat_message(
    parsed: WeChatPayload,
    settings: Settings,
    dispatcher: ReplyDispatcher,
    whatsapp_gateway: WhatsAppGateway,
) -> None:
    if settings.wechat_forward_to_sales_group and settings.sales_group_id:
        await whatsapp_gateway.send_to_group(
            settings.sales_group_id, format_forward_message(parsed)
        )

    message = parsed.to_group_message()
    if message is None:
        logger.info(
            "wechat_message_without_group",
            extra={"has_text": bool(parsed.text), "is_group": parsed.is_group},
        )
        return
    await dispatcher.dispatch(message)


@router.post("/webhooks/wechat")
async def wechat_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    dispatcher: ReplyDispatcher = Depends(get_reply_dispatcher),
    whatsapp_gateway: WhatsAppGateway = Depends(get_whatsapp_gateway),
) -> dict[str, Any]:
    """Recebe mensagens dos grupos de fornecedores."""
    payload = await _read_json(request)
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_payload")

    parsed = parse_wechat_payload(payload)
    if parsed.is_outgoing:
        logger.debug("wechat_outgoing_message_skipped")
        return {"ok": True, "status": "ignored"}

    background_tasks.add_task(
        _process_wechat_message, parsed, settings, dispatcher, whatsapp_gateway
    )
    return {"ok": True, "status": "accepted"}


@router.get("/sessions/{session_id}")
def session_status(
    session_id: str,
    controller: SessionLifecycleController = Depends(get_session_controller),
) -> dict[str, Any]:
    """Estado corrente de uma sessão (enquanto ainda não foi limpa)."""
    if not validate_session_id(session_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_session_id"
        )

    session = controller.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="session_not_found")

    return {
        "session_id": session_id,
        "status": session.status.value,
        "category": session.category,
        "replies_received": session.replies_received,
        "duration_ms": session.elapsed_ms(),
        "is_timeout": session.is_timeout,
    }
