"""Narration services: where the commentary comes from."""

import asyncio
from typing import Optional, Protocol

import requests

from .config import CONFIG
from .errors import NarrationUnavailable
from .geo import COMPASS_NAMES
from .models import NarrationContext, WalkPhase

NO_RESPONSE = "No response from AI"


class NarrationService(Protocol):
    async def narrate(self, context: NarrationContext) -> str:
        ...


def describe_heading(context: NarrationContext) -> str:
    """Short phrase about where the walker is in the walk, e.g. 'heading northeast, turning left'"""
    if context.phase is WalkPhase.END:
        return "just arrived at the end of the route"
    parts = []
    if context.direction:
        parts.append(f"heading {COMPASS_NAMES.get(context.direction, context.direction)}")
    if context.turn:
        parts.append(f"turning {context.turn}")
    if context.phase is WalkPhase.START:
        parts.insert(0, "just starting out")
    return ", ".join(parts)


def build_prompt(context: NarrationContext) -> str:
    coord = context.coordinate
    prompt = (f"I am walking at {context.pace:g} km/h and currently at coordinates "
              f"{coord.lat}, {coord.lng}")
    heading = describe_heading(context)
    if heading:
        prompt += f", {heading}"
    return prompt + ". What should I know about this location or any interesting things around here?"


class LangFlowNarrator:
    """Asks a LangFlow chat flow for commentary on the current location.

    The HTTP call is blocking, so it runs in a worker thread; the event loop
    keeps ticking while the flow thinks.
    """

    def __init__(self, url: str = CONFIG["langflow_url"],
                 session_id: str = CONFIG["langflow_session_id"],
                 timeout: Optional[float] = CONFIG["narration_timeout"]):
        self.url = url
        self.session_id = session_id
        self.timeout = timeout

    def payload(self, context: NarrationContext) -> dict:
        return {
            "input_value": build_prompt(context),
            "output_type": "chat",
            "input_type": "chat",
            "session_id": self.session_id,
        }

    def request(self, context: NarrationContext) -> str:
        """Blocking call to the flow"""
        try:
            response = requests.post(self.url, json=self.payload(context), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise NarrationUnavailable(f"{e} - Make sure LangFlow is running at {self.url}") from e
        except ValueError as e:
            raise NarrationUnavailable(f"invalid JSON from LangFlow: {e}") from e
        return extract_message(data)

    async def narrate(self, context: NarrationContext) -> str:
        return await asyncio.to_thread(self.request, context)


def extract_message(data: dict) -> str:
    """Pull the chat text out of a LangFlow run response"""
    try:
        outputs = data.get("outputs") or []
        inner = outputs[0].get("outputs") or []
        text = inner[0]["results"]["message"]["text"]
    except (AttributeError, IndexError, KeyError, TypeError):
        return NO_RESPONSE
    return text if isinstance(text, str) else NO_RESPONSE


class OfflineNarrator:
    """Local narrator that describes the walk itself, no network needed"""

    def __init__(self, delay: float = 0.0):
        self.delay = delay

    async def narrate(self, context: NarrationContext) -> str:
        if self.delay:
            await asyncio.sleep(self.delay)
        coord = context.coordinate
        heading = describe_heading(context) or "walking"
        return f"{heading[0].upper()}{heading[1:]} at {coord.lat:.5f}, {coord.lng:.5f}."
