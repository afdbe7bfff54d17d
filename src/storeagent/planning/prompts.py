"""Prompt templates for the next-step planner."""

import json
from typing import Any

from storeagent.models.assistant import HistoryEntry, ToolDescriptor
from storeagent.models.chart import ChartType

GENERAL_ROLE_PROMPT = (
    "You are a general e-commerce platform assistant for managing backend operations."
)

CATEGORY_ROLE_PROMPTS: dict[str, str] = {
    "products": (
        "You are a product catalog specialist for an e-commerce platform. You manage "
        "products, variants, collections, categories, pricing and stock levels.\n"
        "When creating product variants, 'options' must be an OBJECT such as "
        '{"Size": "L"}, never an array, and every variant needs a \'prices\' array '
        "with currency_code and amount."
    ),
    "customers": (
        "You are a customer relationship specialist for an e-commerce platform. You "
        "manage customer profiles, addresses, customer groups and purchase history."
    ),
    "orders": (
        "You are an order operations specialist for an e-commerce platform. You track "
        "orders through their lifecycle, fulfillments, returns, exchanges and claims.\n"
        "If you need to answer questions about the amount of orders, use the "
        "orders count tool."
    ),
    "promotions": (
        "You are a marketing specialist for an e-commerce platform. You manage "
        "promotions, campaigns, discounts and coupons.\n"
        "The rule attribute for customer groups MUST be `customer.groups.id` and the "
        'attribute for products MUST be "items.product.id".'
    ),
}

CHART_GUIDANCE = (
    "When providing data for charts, focus on quantitative metrics that can be "
    "visualized effectively."
)

ACTION_PROTOCOL = """\
Decide the next step based on the user's goal and the tool-call history.
Actions: 'call_tool' or 'final_answer'.

1) If you need information or must perform an action, choose 'call_tool'.
2) If you have enough information, choose 'final_answer' and summarize succinctly.

Always retrieve real data via the most relevant tool. Never invent numbers:
every figure in a final answer must come from a tool result.
Return a single JSON object ONLY, no commentary.

JSON to call a tool: {"action":"call_tool","tool_name":"string","tool_args":object}
JSON for the final answer: {"action":"final_answer","answer":"string"}"""


def get_role_prompt(category: str | None, wants_chart: bool) -> str:
    """Role prompt for an assistant category (general when unknown)."""
    prompt = CATEGORY_ROLE_PROMPTS.get((category or "").lower(), GENERAL_ROLE_PROMPT)
    return f"{prompt}\n{CHART_GUIDANCE}" if wants_chart else prompt


def get_chart_directive(wants_chart: bool, chart_type: ChartType) -> str:
    """Instructions on whether and how to gather chartable data."""
    if not wants_chart:
        return (
            "Do NOT include any chart/graph JSON. Provide concise text only. "
            "If data is needed, call the right tool."
        )
    return (
        "The user wants a chart visualization. When providing your final answer:\n"
        "- Call tools that return arrays of data with numeric values (e.g., order "
        "counts, revenue amounts, product quantities)\n"
        "- Prefer data grouped by time periods (dates, months, years) or categories\n"
        f"- The system will automatically convert your data into a {chart_type} chart\n"
        "- List each data point on its own line as 'label: value'"
    )


def tool_catalog(tools: list[ToolDescriptor]) -> list[dict[str, Any]]:
    """Serializable view of the tools offered to the model."""
    return [
        {"name": t.name, "description": t.description, "schema": t.input_schema or None}
        for t in tools
    ]


def build_system_message(
    tools: list[ToolDescriptor],
    *,
    wants_chart: bool,
    chart_type: ChartType,
    category: str | None = None,
) -> str:
    """Static part of the planner prompt, identical for every step of a turn."""
    catalog = json.dumps(tool_catalog(tools), indent=2)
    return (
        f"{get_role_prompt(category, wants_chart)}\n\n"
        f"{ACTION_PROTOCOL}\n\n"
        f"{get_chart_directive(wants_chart, chart_type)}\n\n"
        f"AVAILABLE TOOLS:\n{catalog}"
    )


def build_user_message(prompt: str, history: list[HistoryEntry]) -> str:
    """Dynamic part of the planner prompt: goal plus the steps taken so far."""
    if history:
        steps = json.dumps([h.model_dump(mode="json") for h in history], indent=2, default=str)
        taken = f"Previous actions taken:\n{steps}"
    else:
        taken = "No previous actions taken."
    return "\n\n".join(
        [
            f"User's goal: {prompt}",
            taken,
            "What should I do next? Respond with ONLY the JSON object.",
        ]
    )
