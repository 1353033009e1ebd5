"""Roteamento de cotações por categoria de produto.

Regras em JSON:
    {"categories": {"<categoria>": {"suppliers": [{"wechatGroupId": "...", "name": "..."}]}}}

Categoria é extraída por regra (primeiro nome de categoria contido no texto);
o LLM só é consultado quando as regras não encontram nada, e a resposta dele
precisa ser uma categoria conhecida.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from supplier_relay.domain.models import RoutingResult, SupplierGroup
from supplier_relay.observability.logging import get_logger

if TYPE_CHECKING:
    from supplier_relay.config.settings import Settings
    from supplier_relay.domain.protocols import LLMClientProtocol

logger: logging.Logger = get_logger(__name__)

CATEGORY_NOT_FOUND_ERROR = "Could not determine product category from message"
NO_SUPPLIERS_ERROR = "No supplier groups found for this category"

_WHITESPACE = re.compile(r"\s+")

RoutingRules = dict[str, tuple[SupplierGroup, ...]]


class RoutingRulesError(Exception):
    """Arquivo de regras ausente, ilegível ou com estrutura inválida."""

    pass


def sanitize_message(text: str | None) -> str:
    """Trim + colapsa espaços em branco."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text.strip())


def extract_category(text: str, categories: Mapping[str, Any]) -> str | None:
    """Primeira categoria (na ordem das regras) contida no texto."""
    if not text:
        return None
    lowered = text.lower()
    for category in categories:
        if category in lowered:
            return category
    return None


def validate_category(category: str | None, categories: Mapping[str, Any]) -> bool:
    return bool(category) and category.lower() in categories


def _parse_supplier(raw: Any) -> SupplierGroup | None:
    if not isinstance(raw, dict):
        return None
    group_id = raw.get("wechatGroupId") or raw.get("group_id")
    if not group_id:
        return None
    display_name = raw.get("name") or raw.get("display_name") or ""
    return SupplierGroup(group_id=str(group_id), display_name=str(display_name))


def parse_routing_rules(data: Any) -> RoutingRules:
    """Converte o JSON de regras em categoria -> grupos.

    Raises:
        RoutingRulesError: estrutura sem `categories` como objeto
    """
    if not isinstance(data, dict) or not isinstance(data.get("categories"), dict):
        raise RoutingRulesError("routing rules must contain a 'categories' object")

    rules: RoutingRules = {}
    for name, entry in data["categories"].items():
        suppliers = entry.get("suppliers", []) if isinstance(entry, dict) else []
        groups: list[SupplierGroup] = []
        for raw in suppliers:
            group = _parse_supplier(raw)
            if group is None:
                logger.warning("routing_rule_supplier_invalid", extra={"category": name})
                continue
            groups.append(group)
        rules[str(name).lower()] = tuple(groups)
    return rules


def load_routing_rules(path: str | Path) -> RoutingRules:
    """Lê e valida o arquivo de regras.

    Raises:
        RoutingRulesError: arquivo ausente, JSON inválido ou estrutura inválida
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise RoutingRulesError(f"cannot read routing rules: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RoutingRulesError(f"invalid routing rules JSON: {exc}") from exc
    return parse_routing_rules(data)


class CategoryRouter:
    """Resolve texto de vendas -> categoria -> grupos de fornecedores."""

    def __init__(
        self,
        rules_path: str | Path | None = None,
        rules: RoutingRules | None = None,
        category_extractor: LLMClientProtocol | None = None,
    ) -> None:
        self._rules_path = Path(rules_path) if rules_path else None
        self._category_extractor = category_extractor
        self._rules: RoutingRules = dict(rules) if rules is not None else self._load()

        if category_extractor is None:
            logger.info("LLM category extraction not configured, using rules only")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        category_extractor: LLMClientProtocol | None = None,
    ) -> CategoryRouter:
        extractor = category_extractor
        if extractor is None:
            from supplier_relay.ai.factory import create_llm_client

            extractor = create_llm_client(settings)
        return cls(rules_path=settings.routing_rules_path, category_extractor=extractor)

    @property
    def categories(self) -> list[str]:
        return list(self._rules)

    def _load(self) -> RoutingRules:
        if self._rules_path is None:
            return {}
        try:
            rules = load_routing_rules(self._rules_path)
        except RoutingRulesError as exc:
            logger.error(
                "routing_rules_load_failed",
                extra={"path": str(self._rules_path), "error": str(exc)},
            )
            return {}
        logger.info(
            "routing_rules_loaded",
            extra={"path": str(self._rules_path), "category_count": len(rules)},
        )
        return rules

    def reload(self) -> None:
        """Relê o arquivo de regras (regras vazias se falhar)."""
        self._rules = self._load()

    async def determine_category(self, message_text: str) -> str | None:
        sanitized = sanitize_message(message_text)
        category = extract_category(sanitized, self._rules)
        if category or self._category_extractor is None or not sanitized:
            return category

        category = await self._category_extractor.extract_category(sanitized, self._rules)
        if category and not validate_category(category, self._rules):
            logger.warning("llm_category_invalid", extra={"category": category})
            return None
        return category.lower() if category else None

    def supplier_groups(self, category: str | None) -> tuple[SupplierGroup, ...]:
        if not category:
            return ()
        return self._rules.get(category.lower(), ())

    async def route_message(self, message_text: str) -> RoutingResult:
        """Determina categoria e grupos; falhas vêm como RoutingResult.failed."""
        category = await self.determine_category(message_text)
        if not category:
            logger.info("routing_category_not_found", extra={"message_length": len(message_text)})
            return RoutingResult.failed(CATEGORY_NOT_FOUND_ERROR)

        groups = self.supplier_groups(category)
        if not groups:
            logger.warning("routing_no_supplier_groups", extra={"category": category})
            return RoutingResult.failed(NO_SUPPLIERS_ERROR, category=category)

        return RoutingResult(success=True, category=category, supplier_groups=groups)
