from pathlib import Path

BASE_DIR = Path(__file__).parent


def load_prompt(name, agent_name):
    text = (BASE_DIR / f"{name}.txt").read_text(encoding="utf-8")
    return text.replace("{agent_name}", agent_name)
