#!/usr/bin/env python3
"""Growth Quiz Chat - entry point.

Usage:
    python -m src.main serve                   # Run the /api/chat proxy
    python -m src.main serve --port 9000       # ...on another port
    python -m src.main chat                    # Terminal quiz via the proxy
    python -m src.main chat --direct           # Terminal quiz, gateway in-process
    python -m src.main chat --questions q.json # Use another question catalog

In chat mode, typed lines are sent as answers. Commands:
    /clear   clear the input buffer      /reset   clear the conversation
    /free    leave the scripted quiz     /export  write the export file
    /quit    exit
"""

import argparse
import asyncio
import logging

from src.actions import Action, ActionDispatcher
from src.config import settings
from src.services.archive import write_export
from src.services.gateway import GatewayConfig, ProxyGateway
from src.services.proxy_client import ProxyClient
from src.services.questions import load_question_catalog
from src.session import QuizSession, QuizState

logging.basicConfig(level=settings.LOG_LEVEL, format="%(levelname)s: %(message)s")
log = logging.getLogger(__name__)


def print_new_messages(session: QuizSession, shown: int) -> int:
    """Print log entries after index `shown`; returns the new count."""
    if shown > len(session.messages):
        shown = 0  # log was reset
    for message in session.messages[shown:]:
        if message.role == "user":
            continue  # already on screen as typed
        prefix = "Q" if message.type == "question" else "Bot"
        print(f"\n{prefix}: {message.content}\n")
    return len(session.messages)


async def run_chat(session: QuizSession, export_dir: str) -> None:
    """Interactive terminal loop for one quiz session."""
    dispatcher = ActionDispatcher(session, delay=settings.DEBOUNCE_SECONDS)
    loop = asyncio.get_running_loop()

    session.start()
    shown = print_new_messages(session, 0)

    while True:
        try:
            line = await loop.run_in_executor(None, input, "> ")
        except EOFError:
            break
        command = line.strip()

        if command == "/quit":
            break
        if command == "/clear":
            dispatcher.dispatch(Action.CLEAR_INPUT)
            continue
        if command == "/reset":
            dispatcher.dispatch(Action.RESET)
            print("Conversation cleared")
            session.start()
            shown = print_new_messages(session, 0)
            continue
        if command == "/free":
            if not session.diverge():
                print("Nothing to leave: no scripted question is waiting.")
            continue
        if command == "/export":
            path = write_export(session.export(), export_dir)
            print(f"Data exported successfully: {path}")
            continue

        in_quiz = session.state is QuizState.PRESENTING_QUESTION
        session.set_input(line)
        dispatcher.dispatch(Action.SUBMIT)
        await dispatcher.drain()

        if session.error:
            print(f"\n[error] {session.error.display_message()}\n")
            session.dismiss_error()
        shown = print_new_messages(session, shown)
        if in_quiz and session.state is QuizState.FREE_CONVERSATION:
            print("That was the last question. Keep chatting, or /export your answers.")

    await dispatcher.drain()


def serve(host: str, port: int) -> None:
    import uvicorn

    from src.server import create_app

    log.info(f"Proxy listening on {host}:{port} (upstream={settings.API_BASE_URL})")
    uvicorn.run(create_app(), host=host, port=port, log_level=settings.LOG_LEVEL.lower())


def main():
    parser = argparse.ArgumentParser(description="Growth Quiz Chat")
    sub = parser.add_subparsers(dest="command", required=True)

    serve_parser = sub.add_parser("serve", help="Run the chat completion proxy")
    serve_parser.add_argument("--host", type=str, default=settings.PROXY_HOST)
    serve_parser.add_argument("--port", type=int, default=settings.PROXY_PORT)

    chat_parser = sub.add_parser("chat", help="Take the quiz in the terminal")
    chat_parser.add_argument(
        "--direct",
        action="store_true",
        help="Call the upstream API in-process instead of through the proxy",
    )
    chat_parser.add_argument("--proxy-url", type=str, default=settings.PROXY_URL)
    chat_parser.add_argument("--questions", type=str, default=settings.QUESTIONS_PATH)
    chat_parser.add_argument("--export-dir", type=str, default=settings.EXPORT_DIR)
    chat_parser.add_argument("--model", type=str, default=settings.OPENAI_MODEL)
    args = parser.parse_args()

    if args.command == "serve":
        serve(args.host, args.port)
        return

    catalog = load_question_catalog(args.questions)
    if args.direct:
        completer = ProxyGateway(GatewayConfig.from_settings(settings))
    else:
        completer = ProxyClient(args.proxy_url)
    log.info(
        f"Config: questions={len(catalog)}, model={args.model}, "
        f"mode={'direct' if args.direct else args.proxy_url}"
    )
    session = QuizSession(catalog, completer, model=args.model, quiz_name=settings.QUIZ_NAME)
    asyncio.run(run_chat(session, args.export_dir))


if __name__ == "__main__":
    main()
