"""Slash-command handlers for the relay bot.

Commands are routed here by handle_message() after the allow-list check, so
every handler can assume an authorized sender. Matching is case-insensitive
and ignores an ``@botname`` suffix (``/Status@clawbot`` → ``status``).

Only /status, /skills and /projects talk to the gateway, each with a single
read-only request and a canned fallback when it fails. None of them touch the
user's session except /reset, which deletes it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from relay.chat.delivery import chat_sender, send_with_fallback
from relay.chat.deps import get_deps
from relay.chat.keepalive import send_typing
from relay.gateway.client import GatewayError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from telegram import Update
    from telegram.ext import ContextTypes

    CommandFn = Callable[[Update, ContextTypes.DEFAULT_TYPE], Awaitable[None]]

logger = logging.getLogger(__name__)

START_TEXT = (
    "🤖 *Clawbot* is ready!\n\n"
    "I'm an AI agent with access to:\n"
    "• 📁 The file system (your projects)\n"
    "• 💻 A terminal\n"
    "• 🌐 A browser\n"
    "• 🔧 Various tools\n\n"
    "Just tell me what needs doing!\n\n"
    "*Commands:*\n"
    "/status — system status\n"
    "/skills — available skills\n"
    "/projects — list projects\n"
    "/reset — reset the session\n"
    "/help — help"
)

HELP_TEXT = (
    "📚 *Clawbot help*\n\n"
    "*Example requests:*\n"
    '• "Show the structure of the projects folder"\n'
    '• "Create a new Python project called myapp"\n'
    '• "Find all TODOs in the code"\n'
    '• "Run the tests in project X"\n'
    '• "Open example.com and take a screenshot"\n'
    '• "Review this code and find bugs"\n\n'
    "*Working directories:*\n"
    "`{workspace}` — your projects\n"
    "`/home/node/workspace` — scratch area\n\n"
    "*Security:*\n"
    "Dangerous operations run in a sandbox."
)

RESET_TEXT = "🔄 Session reset. Starting with a clean slate!"

DEFAULT_SKILLS_TEXT = (
    "🔧 *Skills*\n\n"
    "Built-in skills are active:\n"
    "• 📁 File system\n"
    "• 💻 Terminal\n"
    "• 🌐 Web browser\n"
    "• 📝 Code editing\n\n"
    "More skills can be installed through clawhub."
)

BASIC_SKILLS_TEXT = (
    "🔧 *Basic skills:*\n\n"
    "• 📁 Working with files\n"
    "• 💻 Running commands\n"
    "• 🌐 Web browser\n"
    "• 📝 Code editing"
)

PROJECTS_UNAVAILABLE_TEXT = (
    "📁 *Projects*\n\n"
    "Could not fetch the list.\n"
    "Check that the projects folder is mounted in docker-compose.yml"
)


def parse_command(text: str) -> str:
    """Return the lowercase command name from a message like ``/Skills@bot arg``."""
    head = text.split(maxsplit=1)[0]
    return head.removeprefix("/").split("@", 1)[0].lower()


async def _reply(update: Update, context: ContextTypes.DEFAULT_TYPE, text: str) -> None:
    """Send a Markdown reply, falling back to plain text if the markup is rejected."""
    if update.effective_chat is None:
        raise ValueError("command reply on an update with no effective_chat")
    await send_with_fallback(chat_sender(context.bot, update.effective_chat.id), text)


async def _typing(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if update.effective_chat is not None:
        await send_typing(context.bot, update.effective_chat.id)


# ── Static commands ───────────────────────────────────────────────────────────


async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _reply(update, context, START_TEXT)


async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    deps = get_deps(context.application)
    await _reply(update, context, HELP_TEXT.format(workspace=deps.workspace))


async def cmd_id(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if update.effective_user is None:
        raise ValueError("cmd_id called on an update with no effective_user")
    await _reply(update, context, f"🆔 Your User ID: `{update.effective_user.id}`")


async def cmd_reset(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if update.effective_user is None:
        raise ValueError("cmd_reset called on an update with no effective_user")
    deps = get_deps(context.application)
    if deps.sessions.delete(update.effective_user.id):
        logger.info("Session reset for user %s", update.effective_user.id)
    await _reply(update, context, RESET_TEXT)


# ── Gateway-backed commands ───────────────────────────────────────────────────


async def cmd_status(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Report gateway health: version, uptime and heap usage."""
    deps = get_deps(context.application)
    await _typing(update, context)

    try:
        health = await deps.gateway.health()
    except GatewayError as exc:
        logger.error("Status check error: %s", exc)
        await _reply(
            update,
            context,
            "❌ *Gateway unavailable*\n\n"
            f"Error: {exc}\n\n"
            "Try:\n"
            "`docker compose up -d openclaw-gateway`",
        )
        return

    uptime = f"{health.uptime_minutes} min" if health.uptime_minutes is not None else "unknown"
    memory = f"{health.heap_used_mb} MB" if health.heap_used_mb is not None else "unknown"
    await _reply(
        update,
        context,
        "✅ *System status*\n\n"
        "🟢 Gateway: Online\n"
        f"📦 Version: {health.version or 'unknown'}\n"
        f"⏱ Uptime: {uptime}\n"
        f"💾 Memory: {memory}",
    )


async def cmd_skills(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """List the gateway's installed skills, or the built-in set."""
    deps = get_deps(context.application)
    await _typing(update, context)

    try:
        skills = await deps.gateway.list_skills()
    except GatewayError as exc:
        logger.error("Skills list error: %s", exc)
        await _reply(update, context, BASIC_SKILLS_TEXT)
        return

    if not skills:
        await _reply(update, context, DEFAULT_SKILLS_TEXT)
        return

    skill_list = "\n".join(f"• {name}" for name in skills)
    await _reply(update, context, f"🔧 *Available skills:*\n\n{skill_list}")


async def cmd_projects(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Ask the agent for the folder names in the projects workspace."""
    deps = get_deps(context.application)
    await _typing(update, context)

    try:
        listing = await deps.gateway.list_projects(deps.workspace)
    except GatewayError as exc:
        logger.error("Projects list error: %s", exc)
        await _reply(update, context, PROJECTS_UNAVAILABLE_TEXT)
        return

    listing = listing or "The projects folder is empty or unavailable."
    await _reply(update, context, f"📁 *Projects:*\n\n{listing}")


# ── Dispatch ──────────────────────────────────────────────────────────────────

COMMANDS: dict[str, CommandFn] = {
    "start": cmd_start,
    "status": cmd_status,
    "skills": cmd_skills,
    "projects": cmd_projects,
    "reset": cmd_reset,
    "help": cmd_help,
    "id": cmd_id,
}


async def dispatch_command(
    update: Update, context: ContextTypes.DEFAULT_TYPE, text: str
) -> None:
    """Route a ``/command`` message to its handler.

    Unknown commands get a plain-text pointer to /help.
    """
    name = parse_command(text)
    handler = COMMANDS.get(name)
    if handler is not None:
        await handler(update, context)
        return

    if update.effective_chat is None:
        raise ValueError("dispatch_command called on an update with no effective_chat")
    command = text.split(maxsplit=1)[0]
    await context.bot.send_message(
        chat_id=update.effective_chat.id,
        text=f"❓ Unknown command: {command}\n\nUse /help for the list of commands.",
    )
