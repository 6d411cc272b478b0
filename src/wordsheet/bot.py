"""Telegram front-end of the word sheet."""
import logging
from datetime import UTC, datetime
from typing import Any, List, Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import CallbackContext

from wordsheet.errors import DuplicateWordError, LockTimeoutError
from wordsheet.models.records import BatchStatus, QuizAnswer, RowChangedEvent, WordRecord
from wordsheet.services.srs_scheduler import Feedback

# Get logger for this module
logger = logging.getLogger(__name__)

# Conversation states
MAIN_MENU, ADDING_WORDS, REVIEWING, QUIZ, UNSCRAMBLE = range(5)

# Button texts
MENU = "🏠 Menu"
START_REVIEW = "💡 Review"
START_QUIZ = "❓ Quiz"
START_UNSCRAMBLE = "🔤 Unscramble"
ADD_NEW_WORDS = "📝 Add New Words"
VIEW_STATISTICS = "📊 View Statistics"
BATCH_MENU = "🛠️ Batch Refresh"

FEEDBACK_BUTTONS = [
    ("🔁 Again", Feedback.AGAIN),
    ("😓 Hard", Feedback.HARD),
    ("🙂 Good", Feedback.GOOD),
    ("😎 Easy", Feedback.EASY),
]

ERR_MSG_NOT_ADMIN = "You don't have admin privileges"
ERR_MSG_BUSY = "The sheet is busy right now, please try again in a moment"


def msg_back_to(text: str) -> str: return f"🔙 {text}"


KB_BACK_TO_MENU = [[InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu")]]


def get_services(context: CallbackContext) -> Any:
    """Get the service container stored by the application."""
    return context.application.bot_data["services"]


def is_admin(update: Update, context: CallbackContext) -> bool:
    admin_ids = get_services(context).settings.bot.admin_ids
    return not admin_ids or update.effective_user.id in admin_ids


async def log_received(update: Update, context_type: str) -> None:
    """Log message."""
    txt = ""
    if update.callback_query:
        txt = f" {update.callback_query.data}"
    elif update.message:
        txt = f" {update.message.text}"
    logger.info(f"Received @{context_type:8} from user {update.effective_user.username} ({update.effective_user.id}){txt}")


async def reply(update: Update, text: str, keyboard: Optional[List[List[InlineKeyboardButton]]] = None) -> None:
    """Edit the message behind a button press, or answer a typed message."""
    markup = InlineKeyboardMarkup(keyboard) if keyboard else None
    if update.callback_query:
        await update.callback_query.edit_message_text(text, reply_markup=markup)
    else:
        await update.message.reply_text(text, reply_markup=markup)


async def handle_start(update: Update, context: CallbackContext) -> int:
    """Start the conversation and show main menu."""
    await log_received(update, "start")

    keyboard = [
        [InlineKeyboardButton(START_REVIEW, callback_data="start_review")],
        [InlineKeyboardButton(START_QUIZ, callback_data="start_quiz"),
         InlineKeyboardButton(START_UNSCRAMBLE, callback_data="start_unscramble")],
        [InlineKeyboardButton(ADD_NEW_WORDS, callback_data="add_words")],
        [InlineKeyboardButton(VIEW_STATISTICS, callback_data="statistics")],
    ]
    if is_admin(update, context):
        keyboard.append([InlineKeyboardButton(BATCH_MENU, callback_data="batch_menu")])

    message = (f"Welcome, {update.effective_user.first_name}! 👋\n\n"
               "What would you like to do?")
    await reply(update, message, keyboard)
    return MAIN_MENU


async def handle_callback(update: Update, context: CallbackContext) -> int:
    """Handle callback queries from inline keyboard."""
    query = update.callback_query
    await query.answer()

    await log_received(update, "callback")

    if query.data == "back_to_menu":
        return await handle_start(update, context)
    elif query.data == "add_words":
        return await add_words(update, context)
    elif query.data == "start_review":
        return await start_review(update, context)
    elif query.data.startswith("review_"):
        return await handle_review_response(update, context)
    elif query.data == "cram":
        return await show_cram(update, context)
    elif query.data == "start_quiz":
        return await start_quiz(update, context)
    elif query.data.startswith("quiz_answer_"):
        return await handle_quiz_answer(update, context)
    elif query.data == "start_unscramble":
        return await start_unscramble(update, context)
    elif query.data == "statistics":
        return await show_statistics(update, context)
    elif query.data.startswith("batch_"):
        return await handle_batch(update, context)

    return MAIN_MENU


async def handle_message(update: Update, context: CallbackContext) -> int:
    """Handle messages outside of any flow."""
    await log_received(update, "message")
    await update.message.reply_text("Please start with /start")
    return MAIN_MENU


# Adding words

async def add_words(update: Update, context: CallbackContext) -> int:
    """Start adding new words."""
    await reply(update, "📝 Please enter words (one per line)", KB_BACK_TO_MENU)
    return ADDING_WORDS


async def handle_add_words(update: Update, context: CallbackContext) -> int:
    """Add every typed word as a new row."""
    await log_received(update, "add")

    words = [word.strip() for word in update.message.text.split("\n") if word.strip()]
    if not words:
        await update.message.reply_text("No valid words provided. Please try again.")
        return ADDING_WORDS

    processor = get_services(context).processor
    lines = []
    for word in words:
        try:
            result = await processor.add_word(word)
        except LockTimeoutError:
            lines.append(f"⏳ {word}: {ERR_MSG_BUSY}")
            continue
        if result.ok:
            lines.append(f"✅ {word} ({result.value.part_of_speech})")
        elif isinstance(result.error, DuplicateWordError):
            lines.append(f"⚠️ {word}: already in row {result.error.conflicting_row}")
        else:
            lines.append(f"❌ {word}: {result.error}")

    await update.message.reply_text(
        "\n".join(lines) + "\n\nYou can add more words or go to menu.",
        reply_markup=InlineKeyboardMarkup(KB_BACK_TO_MENU),
    )
    return ADDING_WORDS


# Editing rows

def parse_row_argument(context: CallbackContext) -> Optional[int]:
    args = context.args or []
    if not args or not (args[0].isascii() and args[0].isdigit()) or int(args[0]) < 1:
        return None
    return int(args[0])


async def handle_edit_row(update: Update, context: CallbackContext) -> int:
    """Set the word of a row: ``/edit <row> [word]``; no word clears the row."""
    await log_received(update, "edit")
    row = parse_row_argument(context)
    if row is None or row > get_services(context).table.row_count():
        await update.message.reply_text("Usage: /edit <row> [word]")
        return MAIN_MENU

    event = RowChangedEvent(row=row, new_value=" ".join(context.args[1:]))
    try:
        result = await get_services(context).processor.handle_row_changed(event)
    except LockTimeoutError:
        await update.message.reply_text(ERR_MSG_BUSY)
        return MAIN_MENU

    if not result.ok:
        await update.message.reply_text(f"⚠️ {result.error}")
    elif result.value is None:
        await update.message.reply_text(f"🧹 Row {row} cleared")
    else:
        await update.message.reply_text(f"✅ Row {row}: {result.value.word} ({result.value.part_of_speech})")
    return MAIN_MENU


async def handle_delete_row(update: Update, context: CallbackContext) -> int:
    """Remove a row: ``/delete <row>``."""
    await log_received(update, "delete")
    if not is_admin(update, context):
        await update.message.reply_text(ERR_MSG_NOT_ADMIN)
        return MAIN_MENU
    row = parse_row_argument(context)
    services = get_services(context)
    if row is None or row > services.table.row_count():
        await update.message.reply_text("Usage: /delete <row>")
        return MAIN_MENU

    try:
        async with services.lock.hold(f"deleting row {row}"):
            services.table.delete_row(row)
    except LockTimeoutError:
        await update.message.reply_text(ERR_MSG_BUSY)
        return MAIN_MENU
    await update.message.reply_text(f"🗑 Row {row} deleted")
    return MAIN_MENU


async def handle_sort(update: Update, context: CallbackContext) -> int:
    """Sort the sheet by next review date."""
    await log_received(update, "sort")
    if not is_admin(update, context):
        await update.message.reply_text(ERR_MSG_NOT_ADMIN)
        return MAIN_MENU
    services = get_services(context)
    try:
        async with services.lock.hold("sorting the sheet"):
            services.table.sort_by("next_due_date", "word")
    except LockTimeoutError:
        await update.message.reply_text(ERR_MSG_BUSY)
        return MAIN_MENU
    await update.message.reply_text("↕️ Sheet sorted by next review date")
    return MAIN_MENU


# Review

def format_card(record: WordRecord, reveal: bool) -> str:
    text = f"{record.word}"
    if record.pronunciation:
        text += f"  {record.pronunciation}"
    if reveal:
        text += f"\n\n{record.definitions}"
        if record.translations:
            text += f"\n\n{record.translations}"
        if record.examples:
            text += f"\n\n📝 Examples:\n{record.examples}"
    return text


async def show_review_card(update: Update, context: CallbackContext, reveal: bool = False) -> int:
    queue = context.user_data.get("review_queue") or []
    if not queue:
        await reply(update, "🎉 No more words due today.", [
            [InlineKeyboardButton("📚 Cram upcoming words", callback_data="cram")],
            *KB_BACK_TO_MENU,
        ])
        return MAIN_MENU

    record = get_services(context).table.read(queue[0])
    if record is None or record.is_blank:
        queue.pop(0)
        return await show_review_card(update, context)

    if reveal:
        keyboard = [[InlineKeyboardButton(text, callback_data=f"review_{feedback.value}")
                     for text, feedback in FEEDBACK_BUTTONS]]
        message = format_card(record, True) + "\n\nHow well did you know it? (or type a number of days)"
    else:
        keyboard = [[InlineKeyboardButton("👀 Show answer", callback_data="review_show")]]
        message = format_card(record, False)
    keyboard.extend(KB_BACK_TO_MENU)
    await reply(update, message, keyboard)
    return REVIEWING


async def start_review(update: Update, context: CallbackContext) -> int:
    """Start reviewing the words due today."""
    due = get_services(context).review.get_due_rows(datetime.now(UTC))
    context.user_data["review_queue"] = [record.row for record in due]
    return await show_review_card(update, context)


async def handle_review_response(update: Update, context: CallbackContext) -> int:
    """Handle the reveal button, a feedback button or a typed day count."""
    await log_received(update, "review")
    queue = context.user_data.get("review_queue") or []
    if not queue:
        return await show_review_card(update, context)

    if update.callback_query:
        answer = update.callback_query.data[len("review_"):]
        if answer == "show":
            return await show_review_card(update, context, reveal=True)
    else:
        answer = update.message.text

    try:
        result = await get_services(context).review.submit_feedback(queue[0], answer)
    except LockTimeoutError:
        await reply(update, ERR_MSG_BUSY, KB_BACK_TO_MENU)
        return REVIEWING

    if not result.ok:
        await reply(update, f"⚠️ {result.error}", KB_BACK_TO_MENU)
        return REVIEWING

    queue.pop(0)
    # Words answered "Again" come back at the end of today's session
    if result.value.review.next_due_date <= datetime.now(UTC).date():
        queue.append(result.value.row)
    return await show_review_card(update, context)


async def show_cram(update: Update, context: CallbackContext) -> int:
    """List the next words coming up for review."""
    upcoming = get_services(context).review.get_future_rows(10, datetime.now(UTC))
    if not upcoming:
        await reply(update, "Nothing scheduled yet.", KB_BACK_TO_MENU)
        return MAIN_MENU
    lines = [f"{r.review.next_due_date}: {r.word} — {r.translations.splitlines()[-1] if r.translations else ''}"
             for r in upcoming]
    await reply(update, "📚 Coming up:\n\n" + "\n".join(lines), KB_BACK_TO_MENU)
    return MAIN_MENU


# Quiz

async def show_quiz_question(update: Update, context: CallbackContext, note: str = "") -> int:
    questions = context.user_data["quiz_questions"]
    answers = context.user_data["quiz_answers"]
    if len(answers) >= len(questions):
        return await finish_quiz(update, context)

    question = questions[len(answers)]
    keyboard = [[InlineKeyboardButton(option, callback_data=f"quiz_answer_{i}")]
                for i, option in enumerate(question.options)]
    await reply(update, f"{note}❓ {len(answers) + 1}/{len(questions)}\n\n{question.prompt}", keyboard)
    return QUIZ


async def start_quiz(update: Update, context: CallbackContext) -> int:
    """Start a multiple choice quiz."""
    result = get_services(context).quiz.select_questions()
    if not result.ok:
        await reply(update, f"⚠️ {result.error}", KB_BACK_TO_MENU)
        return MAIN_MENU
    context.user_data["quiz_questions"] = result.value
    context.user_data["quiz_answers"] = []
    return await show_quiz_question(update, context)


async def handle_quiz_answer(update: Update, context: CallbackContext) -> int:
    """Check the chosen option."""
    questions = context.user_data.get("quiz_questions")
    if not questions:
        return await handle_start(update, context)
    answers = context.user_data["quiz_answers"]
    question = questions[len(answers)]
    chosen = question.options[int(update.callback_query.data[len("quiz_answer_"):])]
    correct = chosen == question.correct_word
    answers.append(QuizAnswer(row=question.row, correct=correct))
    note = "✅ Correct!\n\n" if correct else f"❌ It was: {question.correct_word}\n\n"
    return await show_quiz_question(update, context, note)


async def finish_quiz(update: Update, context: CallbackContext) -> int:
    """Store the session and show the score."""
    answers = context.user_data.pop("quiz_answers", [])
    context.user_data.pop("quiz_questions", None)
    context.user_data.pop("unscramble_tasks", None)
    try:
        await get_services(context).quiz.record_session(answers)
    except LockTimeoutError:
        await reply(update, ERR_MSG_BUSY, KB_BACK_TO_MENU)
        return MAIN_MENU
    score = sum(1 for answer in answers if answer.correct)
    await reply(update, f"🏁 Score: {score}/{len(answers)}", [
        [InlineKeyboardButton(START_QUIZ, callback_data="start_quiz"),
         InlineKeyboardButton(START_UNSCRAMBLE, callback_data="start_unscramble")],
        *KB_BACK_TO_MENU,
    ])
    return MAIN_MENU


# Unscramble

async def show_unscramble_task(update: Update, context: CallbackContext) -> int:
    tasks = context.user_data["unscramble_tasks"]
    answers = context.user_data["quiz_answers"]
    if len(answers) >= len(tasks):
        return await finish_quiz(update, context)
    task = tasks[len(answers)]
    await reply(update, f"🔤 {task.scrambled}\n\n{task.hint}\n\nType the word:")
    return UNSCRAMBLE


async def start_unscramble(update: Update, context: CallbackContext) -> int:
    """Start an unscramble drill."""
    result = get_services(context).quiz.select_unscramble()
    if not result.ok:
        await reply(update, f"⚠️ {result.error}", KB_BACK_TO_MENU)
        return MAIN_MENU
    context.user_data["unscramble_tasks"] = result.value
    context.user_data["quiz_answers"] = []
    return await show_unscramble_task(update, context)


async def handle_unscramble_answer(update: Update, context: CallbackContext) -> int:
    """Check a typed answer."""
    await log_received(update, "drill")
    tasks = context.user_data.get("unscramble_tasks")
    if not tasks:
        return await handle_start(update, context)
    answers = context.user_data["quiz_answers"]
    task = tasks[len(answers)]
    correct = update.message.text.strip().casefold() == task.correct_word.casefold()
    answers.append(QuizAnswer(row=task.row, correct=correct))
    await update.message.reply_text("✅ Correct!" if correct else f"❌ It was: {task.correct_word}")
    return await show_unscramble_task(update, context)


# Statistics

async def show_statistics(update: Update, context: CallbackContext) -> int:
    """Show review and batch statistics."""
    services = get_services(context)
    stats = services.review.statistics(datetime.now(UTC))
    batch = services.pipeline.status()
    message = (
        "📊 Statistics:\n\n"
        f"Words in the sheet: {stats['total']}\n"
        f"Due today: {stats['due']}\n"
        f"Upcoming: {stats['upcoming']}\n"
        f"Batch refresh: {format_batch_status(batch)}"
    )
    await reply(update, message, KB_BACK_TO_MENU)
    return MAIN_MENU


# Batch refresh

def format_batch_status(status: BatchStatus) -> str:
    if status.is_complete:
        return f"complete ({status.total_rows} rows)"
    return f"{status.last_processed}/{status.total_rows} rows"


def batch_keyboard(auto_running: bool) -> List[List[InlineKeyboardButton]]:
    return [
        [InlineKeyboardButton("▶️ Next window", callback_data="batch_next")],
        [InlineKeyboardButton("⏹ Stop auto" if auto_running else "⏩ Auto",
                              callback_data="batch_auto_stop" if auto_running else "batch_auto_start")],
        [InlineKeyboardButton("🔄 Restart from row 1", callback_data="batch_restart")],
        *KB_BACK_TO_MENU,
    ]


async def handle_batch(update: Update, context: CallbackContext) -> int:
    """Show and control the batch refresh."""
    if not is_admin(update, context):
        await reply(update, ERR_MSG_NOT_ADMIN, KB_BACK_TO_MENU)
        return MAIN_MENU

    services = get_services(context)
    action = update.callback_query.data if update.callback_query else "batch_menu"
    note = ""
    if action == "batch_next":
        if services.runner.running:
            note = "Auto mode is running; the next window starts on its own."
        else:
            try:
                await services.runner.run_once()
            except LockTimeoutError:
                note = ERR_MSG_BUSY
    elif action == "batch_auto_start":
        await services.runner.start()
        note = "Auto mode started."
    elif action == "batch_auto_stop":
        await services.runner.stop()
        note = "Auto mode stopped after the current window."
    elif action == "batch_restart":
        await services.runner.restart()
        note = "Progress cleared; the next window starts at row 1."

    message = f"🛠️ Batch refresh: {format_batch_status(services.pipeline.status())}"
    if note:
        message += f"\n\n{note}"
    await reply(update, message, batch_keyboard(services.runner.running))
    return MAIN_MENU
