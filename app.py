from flask import Flask, request, jsonify
import logging

from config import load_settings

from agents.common.storage import init_db, set_db_path
from agents.common.subjects import SubjectResolver
from agents.finance.dispatcher import ToolDispatcher
from agents.finance.llm import GeminiReasoner
from agents.finance.orchestrator import Orchestrator
from intelligence.reports import build_full_report, build_group_split_report
from session.history import HistoryStore
from session.locks import ScopeLocks
from transport.handler import CollectingChannel, InboundMessage, MessageHandler
from transport.runtime import BackgroundLoop
from utils.money import set_currency

logger = logging.getLogger(__name__)


# -------------------------------------------------
# Wiring
# -------------------------------------------------

def build_orchestrator(settings, reasoner=None):
    history = HistoryStore(
        max_turns=settings.history_max_turns,
        max_scopes=settings.history_max_scopes,
        ttl_seconds=settings.history_ttl_seconds,
    )
    return Orchestrator(
        reasoner=reasoner or GeminiReasoner(api_key=settings.gemini_api_key, model=settings.gemini_model),
        dispatcher=ToolDispatcher(SubjectResolver()),
        history=history,
        locks=ScopeLocks(),
        max_rounds=settings.max_tool_rounds,
        agent_name=settings.agent_name,
    )


def _month_args():
    month = request.args.get("month", type=int)
    year = request.args.get("year", type=int)
    if month is not None and not 1 <= month <= 12:
        raise ValueError("month must be between 1 and 12")
    return month, year


def create_app(settings=None, reasoner=None, loop=None):
    settings = settings or load_settings()

    logging.basicConfig(level=settings.log_level)
    if not settings.gemini_api_key and reasoner is None:
        logger.warning("GEMINI_API_KEY is not set. Gemini calls will fail.")

    set_currency(settings.currency)
    set_db_path(settings.database_path)
    init_db()

    orchestrator = build_orchestrator(settings, reasoner)
    handler = MessageHandler(
        orchestrator,
        agent_name=settings.agent_name,
        simulate_typing=settings.simulate_typing,
    )
    loop = loop or BackgroundLoop()

    app = Flask(__name__)
    app.config["SETTINGS"] = settings
    app.extensions["caixa"] = {"orchestrator": orchestrator, "handler": handler, "loop": loop}

    # -------------------------------------------------
    # Routes
    # -------------------------------------------------

    @app.route("/api/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok", "agent": settings.agent_name})

    @app.route("/api/messages", methods=["POST"])
    def receive_message():
        try:
            event = InboundMessage.from_payload(request.get_json(silent=True))
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        channel = CollectingChannel()
        try:
            reply = loop.submit(handler.handle(event, channel), timeout=settings.reply_timeout_seconds)
        except TimeoutError:
            logger.error("Reply timed out for chat %s; processing continues in the background", event.chat_id)
            return jsonify({"error": "timeout"}), 504

        return jsonify({"reply": reply, "typing": channel.typing})

    @app.route("/api/reports/<user_id>", methods=["GET"])
    def user_report(user_id):
        try:
            month, year = _month_args()
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        return jsonify({"report": build_full_report(user_id, month, year)})

    @app.route("/api/groups/<group_id>/split", methods=["GET"])
    def group_split(group_id):
        try:
            month, year = _month_args()
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        return jsonify({"report": build_group_split_report(group_id, month, year)})

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
