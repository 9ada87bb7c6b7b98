from __future__ import annotations

from typing import List

import chainlit as cl

from fundi.config import configure_logging
from fundi.graph import close_default_orchestrator, generate_fundi_response
from fundi.schemas import Message

configure_logging()

BANNER = """Hi, I'm Fundi!

Ask me about money, careers, wellness, learning, cooking, fitness, or fixing things around the house.
I'll suggest sections of the app, but I'll always ask before taking you anywhere.
"""


@cl.on_app_shutdown
async def on_app_shutdown():
    await close_default_orchestrator()


@cl.on_chat_start
async def on_chat_start():
    cl.user_session.set("history", [])
    await cl.Message(content=BANNER).send()


@cl.action_callback("navigate")
async def on_navigate(action: cl.Action):
    route = action.payload.get("route", "/")
    await cl.Message(content=f"Okay! Opening {route} for you.").send()


@cl.on_message
async def on_message(message: cl.Message):
    user_text = (message.content or "").strip()
    if not user_text:
        return

    history: List[Message] = cl.user_session.get("history") or []

    msg = cl.Message(content="…")
    await msg.send()

    reply = await generate_fundi_response(user_text, None, history)

    history = history + [
        Message(role="user", content=user_text),
        Message(role="assistant", content=reply.response),
    ]
    cl.user_session.set("history", history)

    content = reply.response
    if reply.advisory:
        content += f"\n\n_{reply.advisory.title}: {reply.advisory.description}_"
    msg.content = content
    msg.actions = [
        cl.Action(
            name="navigate",
            payload={"route": a.payload.route},
            label=a.payload.reason,
        )
        for a in reply.actions
    ]
    await msg.update()
