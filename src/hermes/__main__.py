"""Command-line search: ``python -m hermes <query words>``.

Connects to the tool provider, prints the tools it offers, streams the answer
to stdout and disconnects.
"""

import asyncio
import sys

from .config import settings
from .domain.domain_value import RoundSummary, TextDelta
from .domain.errors import HermesError
from .log import setup_logging
from .service import create_connection_manager, create_search_service

USAGE = """\
Usage: python -m hermes <query>

Examples:
  python -m hermes "coffee shops in Brooklyn"
  python -m hermes which brands sell running shoes
"""


async def run(query: str) -> int:
    connections = create_connection_manager(settings)
    service = create_search_service(settings, connections)
    await connections.connect()
    try:
        tools = await service.list_tools()
        print(f"Mode: {service.mode()}")
        print(f"Available tools: {', '.join(tools) if tools else '(none)'}\n")

        async for event in service.orchestrator.stream(query):
            if isinstance(event, TextDelta):
                print(event.content, end="", flush=True)
            elif isinstance(event, RoundSummary) and event.tool_calls_requested:
                print(f"\n[round {event.index}: {', '.join(event.tool_names)}]", flush=True)
        print()
    except HermesError as exc:
        print(f"\nError ({exc.kind}): {exc.message}", file=sys.stderr)
        return 1
    finally:
        await connections.disconnect()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    query = " ".join(args).strip()
    if not query:
        print(USAGE)
        return 0
    setup_logging(fmt="console")
    return asyncio.run(run(query))


if __name__ == "__main__":
    sys.exit(main())
