# src/taskminder/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import format_task
from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


class ConsolePresenter:
    """Prints the visible list whenever it changes (quietly while muted)."""

    def __init__(self) -> None:
        self.muted = False
        self.last: list[Task] = []

    def on_filtered_list_changed(self, tasks: list[Task]) -> None:
        self.last = list(tasks)
        if self.muted:
            return
        if not tasks:
            _print_ts("(no tasks)")
            return
        print("\n".join(format_task(t) for t in tasks))

    def on_validation_error(self, reason: str) -> None:
        _print_ts(f"[!] {reason}")


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    while True:
        try:
            user_input = (await asyncio.to_thread(input, ">>> ")).strip()
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

        if user_input.lower() == "/logout":
            if state.session is not None:
                state.session.close()
                logger.info("Session closed for %s", state.session.user_id)
            break

        try:
            response = await command_registry.handle(state, user_input)
            # Let the coordinator catch up with store pushes before replying.
            await state.coordinator.drain()
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is None:
            response = "Commands start with '/'. Use /help."
        _print_ts(response)

    logger.info("Console connector finished.")
