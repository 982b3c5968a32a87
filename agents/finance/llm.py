import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Tuple

from google import genai
from google.genai import types

from session.history import ToolCall, Turn

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelResponse:
    text: Optional[str] = None
    calls: Tuple[ToolCall, ...] = ()


class Reasoner(Protocol):
    async def respond(self, turns: Sequence[Turn], system_prompt: str, tools) -> ModelResponse:
        ...


def _drop_leading_assistant_turns(turns):
    # pruned histories can start mid-exchange; the model wants a user turn first
    for i, turn in enumerate(turns):
        if turn.role == "human":
            return list(turns[i:])
    return []


def turns_to_contents(turns):
    """
    Render stored turns as Gemini contents.

    A tool round becomes two contents: the model's function calls, then a
    user content carrying one function response per call.
    """
    contents = []
    for turn in _drop_leading_assistant_turns(turns):
        if turn.is_tool_round:
            contents.append(types.Content(role="model", parts=[
                types.Part.from_function_call(name=call.name, args=dict(call.args))
                for call in turn.calls
            ]))
            contents.append(types.Content(role="user", parts=[
                types.Part.from_function_response(name=call.name, response={"result": result.text})
                for call, result in zip(turn.calls, turn.results)
            ]))
        else:
            role = "user" if turn.role == "human" else "model"
            contents.append(types.Content(role=role, parts=[types.Part.from_text(text=turn.text or "")]))
    return contents


class GeminiReasoner:
    """
    Thin async wrapper over google-genai. No retries: failures surface to
    the caller.
    """

    def __init__(self, api_key=None, model="gemini-2.5-flash", client=None):
        self.api_key = api_key
        self.model = model
        self._client = client

    @property
    def client(self):
        # created on first use so the app can start without a key
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def respond(self, turns, system_prompt, tools) -> ModelResponse:
        contents = turns_to_contents(turns)
        logger.debug("Calling Gemini model=%s contents=%d", self.model, len(contents))

        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=contents,
            config=types.GenerateContentConfig(
                system_instruction=system_prompt,
                tools=[types.Tool(function_declarations=list(tools))],
                automatic_function_calling=types.AutomaticFunctionCallingConfig(disable=True),
            ),
        )

        calls = tuple(
            ToolCall(name=fc.name, args=dict(fc.args or {}))
            for fc in (response.function_calls or [])
        )
        text = None if calls else response.text
        return ModelResponse(text=text, calls=calls)
