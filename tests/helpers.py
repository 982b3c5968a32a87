"""Test doubles for the reasoning service."""

from agents.finance.llm import ModelResponse
from session.history import ToolCall


def call(name, **args):
    return ToolCall(name=name, args=args)


def calls(*items):
    return ModelResponse(calls=tuple(items))


def text(value):
    return ModelResponse(text=value)


class ScriptedReasoner:
    """Replays canned responses; repeats the last one when the script runs out."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    async def respond(self, turns, system_prompt, tools):
        self.requests.append({
            "turns": list(turns),
            "system_prompt": system_prompt,
            "tool_names": [t.name for t in tools],
        })
        index = min(len(self.requests) - 1, len(self.responses) - 1)
        return self.responses[index]


class FailingReasoner:
    def __init__(self, error=None):
        self.error = error or RuntimeError("model unavailable")

    async def respond(self, turns, system_prompt, tools):
        raise self.error
