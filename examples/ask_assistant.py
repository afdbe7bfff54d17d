"""Example: ask the assistant from Python and inspect its validation.

Connects to an MCP tool server over SSE, asks one question and prints the
answer together with the numeric checks recorded for the turn.

Usage:
    python examples/ask_assistant.py "How many orders were placed this week?"

Environment variables:
    MCP_URL: MCP server SSE URL (default: http://localhost:8080/sse)
    MCP_TOKEN: Bearer token for auth (default: dev)
    GEMINI_MODEL: Model name (default: gemini-2.5-flash)
    GEMINI_API_KEY: Gemini API key (required)
"""

import asyncio
import os
import sys

from storeagent.agent import create_assistant
from storeagent.config import MCPServerConfig
from storeagent.gateway import MCPToolGateway
from storeagent.metrics import MetricsStore
from storeagent.models.config import AgentSettings, LLMConfig


async def main(prompt: str) -> None:
    """Run one question end-to-end."""
    server = MCPServerConfig(
        url=os.environ.get("MCP_URL", "http://localhost:8080/sse"),
        headers={"Authorization": f"Bearer {os.environ.get('MCP_TOKEN', 'dev')}"},
    )
    llm_config = LLMConfig(
        provider="gemini",
        model=os.environ.get("GEMINI_MODEL", "gemini-2.5-flash"),
    )
    store = MetricsStore()

    async with MCPToolGateway(server) as gateway:
        agent = create_assistant(gateway, store, llm_config, AgentSettings(category="orders"))
        result = await agent.ask(prompt)

    print(result.answer)
    turn = store.get_turn(result.turn_id) if result.turn_id else None
    for check in turn.validations if turn else []:
        status = "ok" if check.ok else "MISMATCH"
        print(f"  {check.label}: ai={check.ai} tool={check.tool} {status}")


if __name__ == "__main__":
    asyncio.run(main(" ".join(sys.argv[1:]) or "How many orders were placed this week?"))
