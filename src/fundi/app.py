from __future__ import annotations

import asyncio
import json
from typing import List
from uuid import uuid4

from .config import configure_logging
from .graph import close_default_orchestrator, generate_fundi_response, get_orchestrator
from .schemas import Message

BANNER = """Fundi (LangGraph + AWS Bedrock, HuggingFace fallback)

Flow:
  crisis gate → classify → prompt + disclaimers → provider race → route check → reply

Commands: /status, /fallback [on|off], /reset, quit
"""


def _handle_command(cmd: str) -> str:
    orch = get_orchestrator()
    parts = cmd.split()
    if parts[0] == "/status":
        return json.dumps(orch.get_fallback_status(), indent=2)
    if parts[0] == "/fallback":
        arg = parts[1].lower() if len(parts) > 1 else None
        use = None if arg is None else arg in {"on", "true", "1"}
        return json.dumps(orch.toggle_fallback_mode(use))
    if parts[0] == "/reset":
        return json.dumps(orch.reset_failures(), indent=2)
    return f"unknown command: {parts[0]}"


async def _chat() -> None:
    try:
        await _loop()
    finally:
        await close_default_orchestrator()


async def _loop() -> None:
    print(BANNER)
    conversation_id = uuid4().int % 1_000_000
    history: List[Message] = []

    while True:
        try:
            user = input("you: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nbye.")
            return

        if user.lower() in {"q", "quit", "exit"}:
            print("bye.")
            return
        if not user:
            continue
        if user.startswith("/"):
            print(_handle_command(user), "\n")
            continue

        reply = await generate_fundi_response(user, conversation_id, history)
        history += [Message(role="user", content=user), Message(role="assistant", content=reply.response)]

        print(f"\nfundi [{reply.category}]:", reply.response)
        for s in reply.suggestions:
            print("  ·", s.text, f"({s.path})" if s.path else "")
        if reply.advisory:
            print(f"  ! {reply.advisory.title}: {reply.advisory.description}")
        print()


def main():
    configure_logging()
    asyncio.run(_chat())


if __name__ == "__main__":
    main()
