"""Prompts e formatação para chamadas à OpenAI.

Responsabilidades:
- System prompts do resumo de replies e da extração de categoria
- Formatar a lista de replies como entrada do LLM
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from supplier_relay.domain.models import Reply

UNKNOWN_CATEGORY = "unknown"


def get_reply_summary_prompt() -> str:
    """System prompt para resumir replies de fornecedores."""
    return """You assist a sales team that forwards customer inquiries to supplier groups.

Summarize the supplier replies below into one concise answer for the sales person:
- Keep prices, quantities, stock and lead times exactly as written.
- Mention which supplier said what when they disagree.
- Do not invent information that is not in the replies.
- Answer in plain text, no markdown tables.
"""


def format_reply_summary_input(replies: Sequence[Reply]) -> str:
    """Formata replies numerados na ordem de chegada."""
    lines = []
    for index, reply in enumerate(replies, start=1):
        sender = reply.sender_name or f"Supplier {index}"
        lines.append(f"Supplier {index} ({sender}, group {reply.group_id}): {reply.text}")
    return "\n\n".join(lines) + "\n\nSummary:"


def get_category_extraction_prompt(categories: Iterable[str]) -> str:
    """System prompt para extração de categoria de produto."""
    known = ", ".join(f'"{category}"' for category in sorted(categories))
    return f"""Analyze the message from a sales person and identify the product category.
Respond with ONLY the category name, one of: {known}.
If no clear category is found, respond with "{UNKNOWN_CATEGORY}".
"""


def format_category_extraction_input(message_text: str) -> str:
    return f'Message: "{message_text}"\n\nCategory:'
