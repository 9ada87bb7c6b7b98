from __future__ import annotations

import chainlit as cl

from fundi.schemas import NavigateAction, NavigatePayload


def test_navigate_action_maps_to_chainlit_button():
    action = NavigateAction(payload=NavigatePayload(route="/finance/budget", reason="Open the Budget Planner?"))

    button = cl.Action(name="navigate", payload={"route": action.payload.route}, label=action.payload.reason)

    assert button.payload == {"route": "/finance/budget"}
    assert button.label == "Open the Budget Planner?"
