from dataclasses import dataclass

@dataclass(frozen=True)
class AgentToolPolicy:
    """
    Declarative description of what a conversation scope may use.
    """
    allow_group_tools: bool = False
    prompt_name: str = "system_prompt"


PRIVATE_POLICY = AgentToolPolicy(allow_group_tools=False, prompt_name="system_prompt")
GROUP_POLICY = AgentToolPolicy(allow_group_tools=True, prompt_name="group_prompt")


def policy_for(ctx) -> AgentToolPolicy:
    return GROUP_POLICY if ctx.is_group and ctx.group_id else PRIVATE_POLICY
