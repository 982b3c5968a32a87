import logging

from agents.common.agent_policy import policy_for
from agents.finance.aggregator import aggregate
from agents.finance.prompts.prompt_loader import load_prompt
from agents.finance.tools import tools_for
from session.history import Turn
from session.locks import ScopeLocks

logger = logging.getLogger(__name__)

MAX_TOOL_ROUNDS = 30
FALLBACK_REPLY = "Sorry, I didn't understand. Could you rephrase?"


def select_reply(last_results, model_text):
    """
    Tool output wins over whatever the model says about it; the model's own
    text is only used when no tool ran at all.
    """
    if last_results:
        reply = aggregate(last_results)
        if reply.strip():
            return reply
    elif model_text and model_text.strip():
        return model_text
    return FALLBACK_REPLY


class Orchestrator:
    """
    Drives one user message to a reply:

        human turn -> [model -> tools -> tool-round turn]* -> assistant turn

    Rounds stop when the model asks for no tools, or after max_rounds
    executed rounds (no further model call is made in that case). Tool calls
    inside a round run one after another, in the order the model listed them.
    Messages in the same scope are serialized.
    """

    def __init__(self, reasoner, dispatcher, history, locks=None, max_rounds=MAX_TOOL_ROUNDS, agent_name="Caixa"):
        self.reasoner = reasoner
        self.dispatcher = dispatcher
        self.history = history
        self.locks = locks or ScopeLocks()
        self.max_rounds = max_rounds
        self.agent_name = agent_name

    async def process_message(self, text, ctx) -> str:
        scope = ctx.scope_key
        logger.info(
            "Processing message user=%s group=%s is_group=%s",
            ctx.user_id, ctx.group_id, ctx.is_group,
        )

        async with self.locks.hold(scope):
            return await self._run(text, ctx, scope)

    async def _run(self, text, ctx, scope):
        policy = policy_for(ctx)
        system_prompt = load_prompt(policy.prompt_name, self.agent_name)
        tools = tools_for(policy)

        self.history.append(scope, Turn.human(text))
        # local view: the store may prune turns while a long loop runs
        turns = self.history.read(scope)

        rounds = 0
        last_results = []
        response = await self.reasoner.respond(turns, system_prompt, tools)

        while response.calls:
            rounds += 1
            logger.info("Round %d: %d tool call(s)", rounds, len(response.calls))

            results = []
            for call in response.calls:
                results.append(await self.dispatcher.execute(call.name, call.args, ctx))

            turn = Turn.tool_round(response.calls, results)
            self.history.append(scope, turn)
            turns.append(turn)
            last_results = results

            if rounds >= self.max_rounds:
                logger.warning("Tool round cap (%d) reached in scope %s", self.max_rounds, scope)
                break

            response = await self.reasoner.respond(turns, system_prompt, tools)

        model_text = response.text if rounds == 0 else None
        reply = select_reply(last_results, model_text)
        self.history.append(scope, Turn.assistant(reply))

        logger.info("Finished processing message after %d round(s)", rounds)
        return reply
