"""
Phoenix Tracker — Telegram Bot.

Telegram is the only user interface. Handlers stay thin: they parse the
command, call an engine, and format the result. A repeating job polls the
fasting engine so a fast completes on its own once the target is reached.

Security-first: messages from anyone but the owner are silently ignored.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine

from telegram import Update
from telegram.ext import Application, ApplicationBuilder, CommandHandler, ContextTypes

from src.config import settings
from src.core import progress as ledger
from src.core.challenges import DEFAULT_CHALLENGE_DAYS, ChallengeService, challenge_progress
from src.core.errors import PhoenixError, ValidationError
from src.core.fasting import FastingEngine, HistoryStats, TickResult, summarize_history
from src.core.journal import JournalService
from src.core.rituals import RitualService, is_scheduled, ritual_adherence
from src.core.time_utils import fast_duration_ms, format_clock, format_duration, now_ms, percentage
from src.data.models import WEEKDAYS

if TYPE_CHECKING:
    from src.data.models import Challenge, FastingSession, JournalEntry, ProgressEntry, Ritual

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that silently ignores messages from anyone but the owner."""

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        if user is None or user.id != settings.OWNER_USER_ID:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return  # Silent ignore
        return await func(update, context)

    return wrapper


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _parse_hours(args: list[str] | None) -> float:
    """Fast length from command args, falling back to DEFAULT_FAST_HOURS."""
    if not args:
        return settings.DEFAULT_FAST_HOURS
    try:
        hours = float(args[0].rstrip("hH"))
    except ValueError:
        raise ValidationError(f"'{args[0]}' is not a number of hours") from None
    fast_duration_ms(hours)
    return hours


def _parse_journal(text: str) -> tuple[str, str]:
    """Split "<title> | <content>" into its two parts."""
    if "|" not in text:
        raise ValidationError("Usage: /journal <title> | <content>")
    title, content = text.split("|", 1)
    return title.strip(), content.strip()


def _split_title(text: str, usage: str) -> tuple[str, str]:
    if "|" not in text:
        raise ValidationError(usage)
    title, description = text.split("|", 1)
    return title.strip(), description.strip()


def _parse_ritual(args: list[str]) -> tuple[str, list[str], str, str]:
    """Parse "<HH:MM> <days> <title> | <description>".

    days is comma-separated ("mon,wed,fri") or "daily".
    """
    usage = "Usage: /addritual <HH:MM> <mon,wed,fri|daily> <title> | <description>"
    if len(args) < 3:
        raise ValidationError(usage)
    time, days_arg = args[0], args[1].lower()
    days = list(WEEKDAYS) if days_arg == "daily" else [d for d in days_arg.split(",") if d]
    title, description = _split_title(" ".join(args[2:]), usage)
    return time, days, title, description


def _parse_challenge(args: list[str]) -> tuple[int, str, str]:
    """Parse "[days] <title> | <description>"; days defaults to 30."""
    usage = "Usage: /addchallenge [days] <title> | <description>"
    if not args:
        raise ValidationError(usage)
    duration = DEFAULT_CHALLENGE_DAYS
    if args[0].isdigit():
        duration = int(args[0])
        args = args[1:]
    title, description = _split_title(" ".join(args), usage)
    return duration, title, description


def _format_status(session: FastingSession, result: TickResult) -> str:
    lines = [
        f"*Fasting:* {format_clock(result.elapsed)}",
        f"Target: {format_clock(session.target_duration)}",
        f"Remaining: {format_clock(result.remaining)}",
        f"Progress: {result.percentage}%",
    ]
    return "\n".join(lines)


def _format_history(stats: HistoryStats, sessions: list[FastingSession], limit: int = 5) -> str:
    lines = [
        "*Fasting history*",
        f"Fasts: {stats.total_sessions} ({stats.completed_sessions} completed)",
        f"Completion rate: {percentage(stats.completion_rate / 100)}%",
        f"Average: {format_duration(int(stats.average_duration))}",
        f"Longest: {format_duration(stats.longest_fast)}",
    ]
    for s in sessions[:limit]:
        if s.end_time is None:
            status = "active"
        else:
            status = "completed" if s.is_completed else "ended early"
            status += f", {format_duration(s.end_time - s.start_time)}"
        lines.append(f"• `{s.id}` {format_duration(s.target_duration)} target ({status})")
    return "\n".join(lines)


def _week_strip(entries: list[ProgressEntry], now: int, days: list[str] | None = None) -> str:
    """Last 7 days, oldest first: ✅ done, ⬜ open, ➖ not scheduled."""
    marks = []
    for day in ledger.recent_days(now):
        if days is not None and ledger.weekday_tag(day) not in days:
            marks.append("➖")
        elif ledger.is_completed_on(entries, day):
            marks.append("✅")
        else:
            marks.append("⬜")
    return "".join(marks)


def _format_challenge(challenge: Challenge, now: int) -> str:
    pct = percentage(challenge_progress(challenge))
    line = (
        f"`{challenge.id}` *{challenge.title}* — {pct}%, "
        f"{ledger.days_remaining_label(challenge.end_date, now)}"
    )
    if challenge.trophy is not None and challenge.trophy.awarded:
        line += f" 🏆 {challenge.trophy.name}"
    return f"{line}\n    {_week_strip(challenge.progress, now)}"


def _format_ritual(ritual: Ritual, now: int) -> str:
    done_today = "✅" if ledger.is_completed_on(ritual.progress, now) else "▫️"
    state = "" if ritual.is_active else " (paused)"
    return (
        f"{done_today} `{ritual.id}` *{ritual.title}* at {ritual.time} "
        f"[{','.join(ritual.days)}] — {ritual_adherence(ritual)}%{state}\n"
        f"    {_week_strip(ritual.progress, now, ritual.days)}"
    )


def _format_journal(entry: JournalEntry) -> str:
    day = ledger.day_key(entry.date).isoformat()
    mood = f" ({entry.mood})" if entry.mood else ""
    return f"• {day} *{entry.title}*{mood}\n  {entry.content}"


async def _reply_error(update: Update, exc: PhoenixError) -> None:
    await update.message.reply_text(str(exc))


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — welcome message."""
    await update.message.reply_text(
        "Welcome to *Phoenix Tracker*!\n\n"
        "• /fast [hours] starts a fast, /endfast stops it\n"
        "• /status shows the running timer\n"
        "• /challenges and /rituals track your daily habits\n\n"
        "Type /help for the full command list.",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list available commands."""
    await update.message.reply_text(
        "*Available commands:*\n"
        "/fast [hours] — Start a fast (default from settings)\n"
        "/endfast — End the running fast\n"
        "/status — Elapsed/remaining time of the running fast\n"
        "/history — Fasting statistics and recent fasts\n"
        "/challenges — List challenges\n"
        "/addchallenge [days] <title> | <description> — New challenge\n"
        "/startchallenge <id> — (Re)start a challenge\n"
        "/checkin <id> — Toggle today's progress on a challenge\n"
        "/rituals — List rituals\n"
        "/addritual <HH:MM> <mon,wed|daily> <title> | <description> — New ritual\n"
        "/ritualdone <id> — Toggle today's progress on a ritual\n"
        "/pauseritual <id> — Pause or resume a ritual\n"
        "/journal <title> | <content> — Add a journal entry\n"
        "/journals — Recent journal entries\n"
        "/help — Show this message",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_fast(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /fast [hours] — start a fast."""
    engine: FastingEngine = context.bot_data["fasting"]
    try:
        hours = _parse_hours(context.args)
        session = await engine.start(hours)
    except PhoenixError as exc:
        await _reply_error(update, exc)
        return

    await update.message.reply_text(
        f"Fast started: {format_duration(session.target_duration)} target. "
        "I'll remind you at halfway and near the end.",
    )


@authorized_only
async def cmd_endfast(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /endfast — end the running fast."""
    engine: FastingEngine = context.bot_data["fasting"]
    try:
        session = await engine.end()
    except PhoenixError as exc:
        await _reply_error(update, exc)
        return

    duration = format_duration(session.end_time - session.start_time)
    if session.is_completed:
        text = f"🎉 Fast completed after {duration}!"
    else:
        text = f"Fast ended early after {duration}."
    await update.message.reply_text(text)


@authorized_only
async def cmd_status(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /status — show the running timer."""
    engine: FastingEngine = context.bot_data["fasting"]
    result = engine.status()
    if result is None:
        await update.message.reply_text("No fast is running. Start one with /fast.")
        return
    await update.message.reply_text(_format_status(engine.active, result), parse_mode="Markdown")


@authorized_only
async def cmd_history(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /history — fasting stats and the most recent fasts."""
    engine: FastingEngine = context.bot_data["fasting"]
    sessions = engine.history()
    if not sessions:
        await update.message.reply_text("No fasts yet. Start a fast to begin tracking your progress.")
        return
    await update.message.reply_text(
        _format_history(summarize_history(sessions), sessions), parse_mode="Markdown",
    )


@authorized_only
async def cmd_challenges(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /challenges — list challenges with progress."""
    service: ChallengeService = context.bot_data["challenges"]
    challenges = service.list_all()
    if not challenges:
        await update.message.reply_text("No challenges yet.")
        return
    now = now_ms()
    lines = ["*Challenges:*\n"] + [_format_challenge(c, now) for c in challenges]
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@authorized_only
async def cmd_startchallenge(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /startchallenge <id>."""
    service: ChallengeService = context.bot_data["challenges"]
    if not context.args:
        await update.message.reply_text("Usage: /startchallenge <id>\nUse /challenges to see IDs.")
        return
    try:
        challenge = await service.start(context.args[0], now_ms())
    except PhoenixError as exc:
        await _reply_error(update, exc)
        return
    await update.message.reply_text(
        f"Started '{challenge.title}' — "
        f"{ledger.days_remaining_label(challenge.end_date, challenge.start_date)}.",
    )


@authorized_only
async def cmd_checkin(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /checkin <id> — toggle today's challenge progress."""
    service: ChallengeService = context.bot_data["challenges"]
    if not context.args:
        await update.message.reply_text("Usage: /checkin <id>\nUse /challenges to see IDs.")
        return
    now = now_ms()
    try:
        challenge = service.toggle_progress(context.args[0], now)
    except PhoenixError as exc:
        await _reply_error(update, exc)
        return

    done = ledger.is_completed_on(challenge.progress, now)
    text = f"{'✅ Checked in' if done else 'Unchecked'}: {challenge.title}"
    if challenge.trophy is not None and challenge.trophy.awarded:
        text += f"\n🏆 Trophy: {challenge.trophy.name}"
    await update.message.reply_text(text)


@authorized_only
async def cmd_rituals(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /rituals — list rituals with adherence."""
    service: RitualService = context.bot_data["rituals"]
    rituals = service.list_all()
    if not rituals:
        await update.message.reply_text("No rituals yet.")
        return
    now = now_ms()
    lines = ["*Rituals:*\n"] + [_format_ritual(r, now) for r in rituals]
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@authorized_only
async def cmd_ritualdone(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /ritualdone <id> — toggle today's ritual progress."""
    service: RitualService = context.bot_data["rituals"]
    if not context.args:
        await update.message.reply_text("Usage: /ritualdone <id>\nUse /rituals to see IDs.")
        return
    now = now_ms()
    ritual_id = context.args[0]
    try:
        ritual = service.get(ritual_id)
        # Unscheduled days are not offered here, even though the ledger accepts them.
        if not is_scheduled(ritual, now):
            await update.message.reply_text(f"'{ritual.title}' is not scheduled today.")
            return
        ritual = service.toggle_progress(ritual_id, now)
    except PhoenixError as exc:
        await _reply_error(update, exc)
        return

    done = ledger.is_completed_on(ritual.progress, now)
    await update.message.reply_text(
        f"{'✅ Done' if done else 'Unchecked'}: {ritual.title} ({ritual_adherence(ritual)}% adherence)",
    )


@authorized_only
async def cmd_journal(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /journal <title> | <content>."""
    service: JournalService = context.bot_data["journal"]
    try:
        title, content = _parse_journal(" ".join(context.args or []))
        entry = service.add(now_ms(), title=title, content=content)
    except PhoenixError as exc:
        await _reply_error(update, exc)
        return
    await update.message.reply_text(f"📝 Saved '{entry.title}'.")


@authorized_only
async def cmd_journals(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /journals — the most recent journal entries."""
    service: JournalService = context.bot_data["journal"]
    entries = service.list_all(limit=5)
    if not entries:
        await update.message.reply_text("No journal entries yet. Add one with /journal.")
        return
    lines = ["*Journal:*\n"] + [_format_journal(e) for e in entries]
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@authorized_only
async def cmd_addchallenge(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addchallenge [days] <title> | <description>."""
    service: ChallengeService = context.bot_data["challenges"]
    try:
        duration, title, description = _parse_challenge(context.args or [])
        challenge = service.create(
            now_ms(), title=title, description=description, duration_days=duration,
        )
    except PhoenixError as exc:
        await _reply_error(update, exc)
        return
    await update.message.reply_text(
        f"Challenge `{challenge.id}` '{challenge.title}' created, {duration} days. "
        f"Check in daily with /checkin {challenge.id}",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_addritual(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addritual <HH:MM> <days> <title> | <description>."""
    service: RitualService = context.bot_data["rituals"]
    try:
        time, days, title, description = _parse_ritual(context.args or [])
        ritual = service.create(
            now_ms(), title=title, description=description, days=days, time=time,
        )
    except PhoenixError as exc:
        await _reply_error(update, exc)
        return
    await update.message.reply_text(
        f"Ritual `{ritual.id}` '{ritual.title}' at {ritual.time} on {','.join(ritual.days)}.",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_pauseritual(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /pauseritual <id> — pause or resume a ritual."""
    service: RitualService = context.bot_data["rituals"]
    if not context.args:
        await update.message.reply_text("Usage: /pauseritual <id>\nUse /rituals to see IDs.")
        return
    try:
        ritual = service.toggle_active(context.args[0])
    except PhoenixError as exc:
        await _reply_error(update, exc)
        return
    state = "resumed" if ritual.is_active else "paused"
    await update.message.reply_text(f"'{ritual.title}' {state}.")


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


async def _tick_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    """Repeating job: advance the fasting timer, auto-completing when due."""
    engine: FastingEngine = context.bot_data["fasting"]
    try:
        await engine.poll()
    except Exception as exc:
        logger.error("Fasting poll failed: %s", exc)


async def _resume_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    """One-off job at startup: reminders do not survive a restart."""
    engine: FastingEngine = context.bot_data["fasting"]
    await engine.resume_reminders()


def build_app(db_path: str | None = None) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        db_path: SQLite file. Defaults to settings.DATABASE_PATH.
    """
    from src.adapters.telegram_reminders import TelegramReminderScheduler
    from src.data.db import ChallengeDB, JournalDB, RitualDB, SessionDB

    app = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).build()

    reminders = TelegramReminderScheduler(app.job_queue, chat_id=settings.OWNER_USER_ID)
    engine = FastingEngine(SessionDB(db_path), reminders)
    engine.restore()

    challenges = ChallengeService(ChallengeDB(db_path), fasting=engine)
    challenges.seed_presets(now_ms())

    app.bot_data["fasting"] = engine
    app.bot_data["challenges"] = challenges
    app.bot_data["rituals"] = RitualService(RitualDB(db_path))
    app.bot_data["journal"] = JournalService(JournalDB(db_path))

    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("fast", cmd_fast))
    app.add_handler(CommandHandler("endfast", cmd_endfast))
    app.add_handler(CommandHandler("status", cmd_status))
    app.add_handler(CommandHandler("history", cmd_history))
    app.add_handler(CommandHandler("challenges", cmd_challenges))
    app.add_handler(CommandHandler("startchallenge", cmd_startchallenge))
    app.add_handler(CommandHandler("checkin", cmd_checkin))
    app.add_handler(CommandHandler("rituals", cmd_rituals))
    app.add_handler(CommandHandler("ritualdone", cmd_ritualdone))
    app.add_handler(CommandHandler("journal", cmd_journal))
    app.add_handler(CommandHandler("journals", cmd_journals))
    app.add_handler(CommandHandler("addchallenge", cmd_addchallenge))
    app.add_handler(CommandHandler("addritual", cmd_addritual))
    app.add_handler(CommandHandler("pauseritual", cmd_pauseritual))

    app.job_queue.run_repeating(
        _tick_job,
        interval=settings.TICK_INTERVAL_SECONDS,
        first=settings.TICK_INTERVAL_SECONDS,
        name="fasting_tick",
    )
    if engine.active is not None:
        app.job_queue.run_once(_resume_job, when=0, name="resume_reminders")

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting Phoenix Tracker bot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
