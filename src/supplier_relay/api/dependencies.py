"""Dependências injetadas nas rotas."""

from __future__ import annotations

from fastapi import Request

from supplier_relay.adapters.whatsapp.gateway import WhatsAppGateway
from supplier_relay.application.inquiry_flow import InquiryTaskRunner
from supplier_relay.application.reply_dispatcher import ReplyDispatcher
from supplier_relay.application.session_controller import SessionLifecycleController
from supplier_relay.config.settings import Settings


def get_settings(request: Request) -> Settings:
    """Retorna settings da aplicação."""

    return request.app.state.settings


def get_session_controller(request: Request) -> SessionLifecycleController:
    """Retorna o controller de sessões (único por processo)."""

    return request.app.state.session_controller


def get_reply_dispatcher(request: Request) -> ReplyDispatcher:
    return request.app.state.reply_dispatcher


def get_inquiry_runner(request: Request) -> InquiryTaskRunner:
    return request.app.state.inquiry_runner


def get_whatsapp_gateway(request: Request) -> WhatsAppGateway:
    """Gateway usado para espelhar mensagens WeChat no grupo de vendas."""

    return request.app.state.whatsapp_gateway
