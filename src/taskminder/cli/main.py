# src/taskminder/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, starts the alarm scheduler and the
refresh coordinator, then runs the console REPL on the event loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import getpass
import logging

from ..cli.bootstrap import create_initial_state, shutdown
from ..cli.commands import VIEW_QUERIES
from ..config import get_settings
from ..connectors.console_connector import ConsolePresenter, run_console_loop
from ..core.state import Session
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _run(settings) -> None:
    presenter = ConsolePresenter()
    session = Session(user_id=getpass.getuser())
    state = create_initial_state(presenter, settings=settings, session=session)

    state.alarms.start()
    runner = asyncio.create_task(state.coordinator.run())
    try:
        # Cold start: the first snapshot rebuilds every reminder from storage.
        presenter.muted = True
        state.coordinator.show(VIEW_QUERIES[settings.default_view])
        await state.coordinator.drain()
        presenter.muted = False
        logger.info("%d reminder(s) armed on startup", len(state.engine.handles()))

        await run_console_loop(state)
    finally:
        runner.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await runner
        shutdown(state)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.log_dir, app_name=settings.app_name, console_level=console_level)

    logging.getLogger("apscheduler").setLevel(max(console_level, logging.INFO))

    logger.info("Starting %s...", settings.app_name)
    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
