# src/tasktalk/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
import threading
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.chat import handle_user_message
from ..core.state import AppState
from ..errors import ProviderError, TurnCancelledError
from ..llm.client import friendly_llm_error_message

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    try:
        if sys.stdout.isatty():
            sys.stdout.write("\033[1A\033[2K\r")
            sys.stdout.write(line + "\n")
            sys.stdout.flush()
        else:
            print(line)
    except Exception:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def run_console_loop(state: AppState, *, stop_event: threading.Event | None = None) -> None:
    """
    Blocking REPL. `stop_event` doubles as the cancel signal for the turn in flight.
    """
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Type your messages. Use /help for commands. Use /exit to quit.\n")

    app_name = str(getattr(getattr(state, "settings", None), "app_name", "tasktalk"))

    while stop_event is None or not stop_event.is_set():
        try:
            user_input = input(">>> You: ").strip()
            _rewrite_prev_line(f"[{_ts_local()}] >>> You: {user_input}")
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        # Commands (/help, /tasks, ...)
        try:
            cmd_response = command_registry.handle(state, user_input)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is not None:
            _print_ts(cmd_response)
            continue

        try:
            reply = handle_user_message(state, user_input, cancel_event=stop_event)
        except ProviderError as e:
            msg = friendly_llm_error_message(e)
            logger.info("LLM provider error: %s", e)
            _print_ts(f"[LLM] {msg}")
            continue
        except TurnCancelledError:
            logger.info("Turn cancelled.")
            break
        except Exception:
            logger.exception("Console chat handler crashed.")
            _print_ts("Internal error while generating a reply.")
            continue

        if not reply.strip():
            _print_ts("[LLM] No output (model produced no content).")
            continue

        print(f"[{_ts_local()}] <<< {app_name}: {reply}\n", flush=True)

    logger.info("Console connector finished.")
