"""Telegram front end for the drill."""
import logging
from typing import List, Optional, Tuple

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import CallbackContext

from derdiedas.config import settings
from derdiedas.models.vocab_models import AnswerOutcome, RoundSnapshot, RoundState
from derdiedas.services.round_service import RoundScheduler
from derdiedas.services.statistics_service import StatisticsStore

# Get logger for this module
logger = logging.getLogger(__name__)

# Keys in application.bot_data
SCHEDULER_KEY = "scheduler"
STATS_KEY = "stats"

# Callback data
CB_START = "drill_start"
CB_RESTART = "drill_restart"
CB_NEXT = "drill_next"
CB_PICK = "drill_pick_"
CB_ARTICLE = "drill_article_"

# Button texts
START_ROUND = "💡 Runde starten"
NEXT = "➡️ Weiter"
PLAY_AGAIN = "🔁 Nochmal"

PHASE_MEANING_LABEL = "Phase 1: Welches Wort passt?"
PHASE_ARTICLE_LABEL = "Phase 2: Welcher Artikel ist richtig?"
ROUND_OVER_LABEL = "Runde beendet"

ERR_MSG_NOT_ALLOWED = "Sorry, this drill is private."


def is_allowed(update: Update) -> bool:
    """Check whether the user may use the bot."""
    allowed = settings.bot.allowed_ids
    return not allowed or update.effective_user.id in allowed


async def log_received(update: Update, context_type: str) -> None:
    """Log an incoming update."""
    txt = f" {update.callback_query.data}" if update.callback_query else ""
    logger.info(f"Received @{context_type:8} from user {update.effective_user.username} ({update.effective_user.id}){txt}")


async def reply(update: Update, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None) -> None:
    """Edit the message behind a callback, or answer a command with a new message."""
    if update.callback_query:
        await update.callback_query.edit_message_text(text, reply_markup=reply_markup)
    else:
        await update.message.reply_text(text, reply_markup=reply_markup)


def get_scheduler(context: CallbackContext) -> Optional[RoundScheduler]:
    return context.bot_data.get(SCHEDULER_KEY)


def render_header(snapshot: RoundSnapshot) -> str:
    return f"Fortschritt: {snapshot.done}/{snapshot.target} | Score: {snapshot.score} | Streak: {snapshot.streak}"


def render_round(snapshot: RoundSnapshot, feedback: str = "") -> Tuple[str, InlineKeyboardMarkup]:
    """Render the current presentation."""
    if snapshot.state == RoundState.COMPLETE:
        lines = [
            ROUND_OVER_LABEL,
            f"🎉 Fertig! {snapshot.done}/{snapshot.target} geschafft. Score={snapshot.score}",
        ]
        keyboard = [[InlineKeyboardButton(PLAY_AGAIN, callback_data=CB_RESTART)]]
        return "\n\n".join(lines), InlineKeyboardMarkup(keyboard)

    lines = [render_header(snapshot)]
    if feedback:
        lines.append(feedback)

    if snapshot.state == RoundState.AWAITING_MEANING:
        lines.extend([PHASE_MEANING_LABEL, f"💬 {snapshot.clue}"])
        keyboard = [
            [InlineKeyboardButton(choice.display, callback_data=f"{CB_PICK}{choice.id}")]
            for choice in snapshot.choices
        ]
    else:
        # The article phase shows the lemma without its article
        lines.extend([PHASE_ARTICLE_LABEL, f"💬 {snapshot.clue}", f"Wort: {snapshot.item.lemma}"])
        keyboard = [[
            InlineKeyboardButton(article, callback_data=f"{CB_ARTICLE}{article}")
            for article in snapshot.articles
        ]]
    return "\n\n".join(lines), InlineKeyboardMarkup(keyboard)


def render_outcome(outcome: AnswerOutcome, snapshot: RoundSnapshot) -> Tuple[str, InlineKeyboardMarkup]:
    """Render the feedback for an answer."""
    if not outcome.awaiting_next:
        # Correct meaning answer, go straight to the article phase
        return render_round(snapshot, outcome.message)

    lines = [render_header(snapshot), outcome.message]
    keyboard = [[InlineKeyboardButton(NEXT, callback_data=CB_NEXT)]]
    return "\n\n".join(lines), InlineKeyboardMarkup(keyboard)


def render_statistics(stats: StatisticsStore, catalog_names: dict) -> str:
    """Render totals over all statistics."""
    summary = stats.summary()
    lines = [
        "📊 Statistik",
        f"Gesehene Wörter: {summary['items_seen']}",
        f"Antworten: {summary['answers']}",
        f"Bedeutung richtig: {summary['meaning_accuracy']:.0%}",
        f"Artikel richtig: {summary['article_accuracy']:.0%}",
    ]
    missed = stats.most_missed()
    if missed:
        lines.append("")
        lines.append("Häufigste Fehler:")
        for item_id, st in missed:
            lines.append(f"• {catalog_names.get(item_id, item_id)}: {st.total_wrong}")
    return "\n".join(lines)


async def handle_start(update: Update, context: CallbackContext) -> None:
    """Show the welcome message."""
    await log_received(update, "start")
    if not is_allowed(update):
        await reply(update, ERR_MSG_NOT_ALLOWED)
        return

    keyboard = [[InlineKeyboardButton(START_ROUND, callback_data=CB_START)]]
    message = ("Willkommen! 👋\n\n"
               "Jedes Wort wird zweimal abgefragt: zuerst wählst du das Wort, das zum Hinweis passt, "
               "dann seinen Artikel.")
    await reply(update, message, InlineKeyboardMarkup(keyboard))


async def handle_restart(update: Update, context: CallbackContext) -> None:
    """Discard the current round and start a new one."""
    await log_received(update, "restart")
    if not is_allowed(update):
        await reply(update, ERR_MSG_NOT_ALLOWED)
        return

    scheduler = get_scheduler(context)
    snapshot = scheduler.start_round()
    await reply(update, *render_round(snapshot))


async def handle_stats(update: Update, context: CallbackContext) -> None:
    """Show statistics over all rounds."""
    await log_received(update, "stats")
    if not is_allowed(update):
        await reply(update, ERR_MSG_NOT_ALLOWED)
        return

    scheduler = get_scheduler(context)
    names = {item.id: item.display for item in scheduler.catalog}
    await reply(update, render_statistics(context.bot_data[STATS_KEY], names))


async def handle_callback(update: Update, context: CallbackContext) -> None:
    """Handle button presses."""
    query = update.callback_query
    await log_received(update, "callback")
    await query.answer()
    if not is_allowed(update):
        await reply(update, ERR_MSG_NOT_ALLOWED)
        return

    scheduler = get_scheduler(context)
    data = query.data

    if data in (CB_START, CB_RESTART):
        await reply(update, *render_round(scheduler.start_round()))
        return

    if data == CB_NEXT:
        if not scheduler.awaiting_next:
            return
        await reply(update, *render_round(scheduler.next_item()))
        return

    if data.startswith(CB_PICK):
        outcome = scheduler.answer_meaning(data[len(CB_PICK):])
    elif data.startswith(CB_ARTICLE):
        outcome = scheduler.answer_article(data[len(CB_ARTICLE):])
    else:
        logger.warning(f"Unknown callback data: {data}")
        return

    if outcome is None:
        # Stale button or a second press while the first one is handled
        logger.debug(f"Ignored answer {data}")
        return
    await reply(update, *render_outcome(outcome, scheduler.snapshot()))


def bot_commands() -> List[Tuple[str, str]]:
    """Commands registered with Telegram."""
    return [
        ("start", "Show the welcome message"),
        ("restart", "Start a new round"),
        ("stats", "Show your statistics"),
    ]
