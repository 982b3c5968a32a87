"""Tests for the Gemini adapter: content rendering and response parsing."""

from types import SimpleNamespace

import pytest

from agents.common.agent_policy import PRIVATE_POLICY
from agents.finance import results as r
from agents.finance.llm import GeminiReasoner, _drop_leading_assistant_turns, turns_to_contents
from agents.finance.tools import tools_for
from session.history import ToolCall, Turn


class FakeModels:
    def __init__(self, response):
        self.response = response
        self.requests = []

    async def generate_content(self, **kwargs):
        self.requests.append(kwargs)
        return self.response


def _client(response):
    models = FakeModels(response)
    return SimpleNamespace(aio=SimpleNamespace(models=models)), models


def test_tool_round_becomes_call_then_response():
    round_turn = Turn.tool_round(
        [
            ToolCall("add_expense", {"description": "light", "amount": 200, "category": "housing"}),
            ToolCall("delete_expense", {"description": "gym"}),
        ],
        [
            r.created("Expense registered: light - R$ 200.00 (housing)"),
            r.not_found('Expense "gym" not found.'),
        ],
    )

    contents = turns_to_contents([Turn.human("light 200, drop gym"), round_turn, Turn.assistant("done")])

    assert [c.role for c in contents] == ["user", "model", "user", "model"]
    assert contents[0].parts[0].text == "light 200, drop gym"

    model_calls = contents[1].parts
    assert [p.function_call.name for p in model_calls] == ["add_expense", "delete_expense"]
    assert model_calls[0].function_call.args == {"description": "light", "amount": 200, "category": "housing"}

    responses = contents[2].parts
    assert [p.function_response.name for p in responses] == ["add_expense", "delete_expense"]
    assert responses[0].function_response.response == {
        "result": "Expense registered: light - R$ 200.00 (housing)"
    }
    assert responses[1].function_response.response == {"result": 'Expense "gym" not found.'}

    assert contents[3].parts[0].text == "done"


def test_leading_assistant_turns_are_dropped():
    stale_round = Turn.tool_round([ToolCall("get_balance")], [r.other("Balance: R$ 0.00")])
    turns = [stale_round, Turn.assistant("Balance: R$ 0.00"), Turn.human("thanks"), Turn.assistant("welcome")]

    assert _drop_leading_assistant_turns(turns) == turns[2:]
    assert _drop_leading_assistant_turns([Turn.assistant("orphan")]) == []
    assert [c.role for c in turns_to_contents(turns)] == ["user", "model"]


@pytest.mark.asyncio
async def test_respond_parses_function_calls():
    client, models = _client(SimpleNamespace(
        function_calls=[
            SimpleNamespace(name="add_expense", args={"description": "taxi", "amount": 25, "category": "transport"}),
            SimpleNamespace(name="get_balance", args=None),
        ],
        text="I'll save that",
    ))
    reasoner = GeminiReasoner(model="gemini-test", client=client)

    response = await reasoner.respond([Turn.human("taxi 25")], "You are Caixa", tools_for(PRIVATE_POLICY))

    assert response.text is None
    assert response.calls == (
        ToolCall("add_expense", {"description": "taxi", "amount": 25, "category": "transport"}),
        ToolCall("get_balance", {}),
    )

    request = models.requests[0]
    assert request["model"] == "gemini-test"
    assert [c.role for c in request["contents"]] == ["user"]

    config = request["config"]
    assert config.automatic_function_calling.disable is True
    assert config.system_instruction == "You are Caixa"
    declared = {d.name for d in config.tools[0].function_declarations}
    assert "add_expense" in declared


@pytest.mark.asyncio
async def test_respond_returns_text_without_calls():
    client, _ = _client(SimpleNamespace(function_calls=None, text="Hi! How can I help?"))

    response = await GeminiReasoner(client=client).respond([Turn.human("hi")], "prompt", [])

    assert response.text == "Hi! How can I help?"
    assert response.calls == ()
