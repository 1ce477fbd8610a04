# src/taskminder/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import datetime

from ..core.errors import InvalidSelection, NotFound, StoreError
from ..core.state import AppState
from ..tasks import codec
from ..tasks.task_api import TaskDraft, complete_task, load_for_edit, save_task
from ..tasks.task_models import CategoryFilter, Task, TaskQuery, TaskStatus, to_local_naive

CommandResult = str | Awaitable[str]
CommandHandler = Callable[[AppState, list[str]], CommandResult]

logger = logging.getLogger(__name__)

VIEW_QUERIES: dict[str, TaskQuery] = {
    "all": TaskQuery.all_tasks(),
    "pending": TaskQuery.by_status(TaskStatus.PENDING),
    "completed": TaskQuery.completed_history(),
}

_DRAFT_KEYS = {"due", "start", "remind", "cat", "prio", "desc"}


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Cannot parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        result = handler(state, args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _parse_dt(raw: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(raw.replace(" ", "T"))
    except ValueError as e:
        raise ValueError(f"Invalid date/time {raw!r}. Use YYYY-MM-DDTHH:MM.") from e
    return to_local_naive(parsed)


def _split_draft_args(args: list[str]) -> tuple[list[str], dict[str, str]]:
    words: list[str] = []
    opts: dict[str, str] = {}
    for a in args:
        key, sep, value = a.partition("=")
        if sep and key.lower() in _DRAFT_KEYS:
            opts[key.lower()] = value
        else:
            words.append(a)
    return words, opts


def _apply_opts(draft: TaskDraft, opts: dict[str, str]) -> TaskDraft:
    if "due" in opts:
        draft.due_time = _parse_dt(opts["due"])
    if "start" in opts:
        draft.start_time = _parse_dt(opts["start"])
    if "remind" in opts:
        draft.offset_index = int(opts["remind"])
    if "cat" in opts:
        draft.category_index = int(opts["cat"])
    if "prio" in opts:
        draft.priority_index = int(opts["prio"])
    if "desc" in opts:
        draft.description = opts["desc"]
    return draft


def format_task(task: Task) -> str:
    due = task.due_time.strftime("%Y-%m-%d %H:%M") if task.due_time else "-"
    st = "DONE" if task.is_completed else "TODO"
    remind = f"{task.remind_offset_minutes}m" if task.remind_offset_minutes else "off"
    return (
        f"#{task.id:<3} {st:<4} {task.priority.name:<6} {task.category.value:<5} "
        f"due {due}  remind {remind:<4} {task.title}"
    )


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <title words> due=YYYY-MM-DDTHH:MM remind=<0-5> cat=<0-2> prio=<0-2> desc="..."
    """
    words, opts = _split_draft_args(args)
    try:
        draft = _apply_opts(TaskDraft(title=" ".join(words)), opts)
        task_id = save_task(state.task_store, state.engine, state.presenter, draft)
    except (ValueError, StoreError) as e:
        return f"Not saved: {e}"
    if task_id is None:
        return "Not saved."
    handle = state.engine.handle_for(task_id)
    when = handle.trigger_time.strftime("%Y-%m-%d %H:%M") if handle else "no reminder"
    return f"Added task #{task_id} ({when})."


async def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit <id> [title words] [due=...] [remind=...] [cat=...] [prio=...] [desc=...]"""
    if not args or not args[0].isdigit():
        return "Usage: /edit <id> [title] [due=..] [remind=..] [cat=..] [prio=..] [desc=..]"
    task_id = int(args[0])
    task = await load_for_edit(state.task_store, task_id)
    if task is None:
        return f"Task #{task_id} not found."

    words, opts = _split_draft_args(args[1:])
    try:
        draft = TaskDraft.from_task(task)
        if words:
            draft = replace(draft, title=" ".join(words))
        draft = _apply_opts(draft, opts)
        saved = save_task(
            state.task_store, state.engine, state.presenter, draft, editing_task_id=task_id
        )
    except (ValueError, StoreError, NotFound) as e:
        return f"Not saved: {e}"
    return "Not saved." if saved is None else f"Updated task #{task_id}."


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args or not args[0].isdigit():
        return "Usage: /done <id>"
    task_id = int(args[0])
    try:
        changed = complete_task(state.task_store, state.engine, task_id)
    except NotFound:
        return f"Task #{task_id} not found."
    except StoreError as e:
        return f"Not saved: {e}"
    return f"Marked task #{task_id} as done." if changed else f"Task #{task_id} was already done."


def cmd_view(state: AppState, args: list[str]) -> str:
    name = (args[0] if args else "all").lower()
    query = VIEW_QUERIES.get(name)
    if query is None:
        return "Usage: /view all | pending | completed"
    state.coordinator.show(query)
    return f"Showing {name} tasks."


def cmd_category(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Category filter: {state.task_filter.category_filter.value}"
    raw = args[0].lower()
    try:
        value = codec.category_filter_from_index(int(raw)) if raw.isdigit() else CategoryFilter(raw)
    except (InvalidSelection, ValueError):
        return "Usage: /category all | work | study | life (or 0-3)"
    shown = state.coordinator.set_category_filter(value)
    return f"Category filter: {value.value} ({len(shown)} shown)"


def cmd_search(state: AppState, args: list[str]) -> str:
    shown = state.coordinator.set_search_text(" ".join(args))
    text = state.task_filter.search_text
    return f"Search: {text!r} ({len(shown)} shown)" if text else f"Search cleared ({len(shown)} shown)"


def cmd_list(state: AppState, args: list[str]) -> str:
    tasks = state.task_filter.visible
    if not tasks:
        return "No tasks found."
    return "\n".join(format_task(t) for t in tasks)


def cmd_reminders(state: AppState, args: list[str]) -> str:
    handles = state.engine.handles()
    if not handles:
        return "No reminders armed."
    lines = ["Armed reminders:"]
    for h in handles:
        lines.append(f"  #{h.task_id} at {h.trigger_time.strftime('%Y-%m-%d %H:%M')}")
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register(
    "add",
    cmd_add,
    help_text='Add a task: /add <title> due=YYYY-MM-DDTHH:MM remind=0-5 cat=0-2 prio=0-2 desc="..."',
)
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> [title] [key=value ...]")
registry.register("done", cmd_done, help_text="Mark a task as done: /done <id>.")
registry.register("view", cmd_view, help_text="Switch list: /view all | pending | completed.")
registry.register(
    "category", cmd_category, help_text="Filter by category: /category all|work|study|life."
)
registry.register("search", cmd_search, help_text="Filter by text in title/description: /search <text>.")
registry.register("list", cmd_list, help_text="Show the filtered task list.", aliases=["ls"])
registry.register("reminders", cmd_reminders, help_text="Show armed reminders.")
