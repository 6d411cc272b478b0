"""Tests for quizzes and usage-balanced selection."""
import random
from dataclasses import replace
from datetime import date, datetime

import pytest
from faker import Faker

from wordsheet.errors import InsufficientPoolError
from wordsheet.models.records import QuizAnswer, ReviewState
from wordsheet.services.quiz_service import MASK, QuizService, mask_word

fake = Faker()

WORDS = ["run", "walk", "jump", "swim", "climb", "throw", "catch", "kick"]


@pytest.fixture
def quiz(table, quiz_settings, sheet_settings, lock) -> QuizService:
    return QuizService(table, quiz_settings, sheet_settings, lock, rng=random.Random(7))


def add(table, word: str, review_count: int = 1, definitions: str = None, usage: int = 0) -> int:
    row = table.append_word(word)
    table.write(replace(
        table.read(row),
        definitions=definitions if definitions is not None else f"[verb]\n1. to {word} for fun",
        review=ReviewState(next_due_date=date(2024, 4, 1), review_count=review_count, total_reviews=review_count),
        quiz_usage_count=usage,
    ))
    return row


@pytest.fixture
def pool(table):
    for word in WORDS:
        add(table, word)
    return table


def usage_counts(table) -> list:
    return [r.quiz_usage_count for r in table.all_records()]


def test_mask_word():
    assert mask_word("to Run fast, run!", "run") == f"to {MASK} fast, {MASK}!"
    assert mask_word("plain", "") == "plain"


def test_eligibility(quiz: QuizService, table):
    add(table, "run")
    add(table, "walk", review_count=0)
    add(table, "jump", definitions="—")
    add(table, "swim", definitions="")

    assert [r.word for r in quiz.eligible_pool()] == ["run"]


def test_insufficient_pool(quiz: QuizService, table):
    for word in WORDS[:3]:
        add(table, word)
    add(table, "fresh", review_count=0)

    result = quiz.select_questions()

    assert isinstance(result.error, InsufficientPoolError)
    assert result.error.available == 3
    assert result.error.required == 4


def test_question_shape(quiz: QuizService, pool):
    questions = quiz.select_questions().unwrap()

    assert len(questions) == 3
    assert len({q.row for q in questions}) == 3
    for question in questions:
        assert len(question.options) == 4
        assert sorted(question.options) == sorted([question.correct_word, *question.distractor_words])
        assert question.correct_word not in question.distractor_words
        assert len(set(question.distractor_words)) == 3
        assert question.prompt == f"to {MASK} for fun"


def test_explicit_zero_count(quiz: QuizService, pool):
    assert quiz.select_questions(0).unwrap() == []
    assert quiz.select_unscramble(0).unwrap() == []
    assert len(quiz.select_questions(None).unwrap()) == 3


def test_least_used_words_come_first(quiz: QuizService, table):
    for word in WORDS:
        add(table, word, usage=0 if word in ("swim", "kick") else 2)

    chosen = quiz.choose_least_used(quiz.eligible_pool(), 2)

    assert sorted(r.word for r in chosen) == ["kick", "swim"]

    chosen = quiz.choose_least_used(quiz.eligible_pool(), 3)

    assert {"kick", "swim"} <= {r.word for r in chosen}
    assert len(chosen) == 3


@pytest.mark.asyncio
async def test_usage_stays_balanced_until_reset(quiz: QuizService, pool, now: datetime):
    resets = []
    for _ in range(3):
        questions = quiz.select_questions().unwrap()
        reset = await quiz.record_session([QuizAnswer(q.row, True) for q in questions], now)
        resets.append(reset)
        counts = usage_counts(pool)
        assert max(counts) - min(counts) <= 1

    # 8 words, 3 per session: the third session touches the last unused words
    assert resets == [False, False, True]
    assert usage_counts(pool) == [0] * len(WORDS)


@pytest.mark.asyncio
async def test_reset_only_touches_eligible_rows(quiz: QuizService, table, now: datetime):
    for word in WORDS[:4]:
        add(table, word, usage=1)
    fresh = add(table, "fresh", review_count=0, usage=5)

    reset = await quiz.record_session([QuizAnswer(1, True)], now)

    assert reset is True
    assert usage_counts(table)[:4] == [0, 0, 0, 0]
    assert table.read(fresh).quiz_usage_count == 5


@pytest.mark.asyncio
async def test_wrong_answer_is_due_tomorrow(quiz: QuizService, pool, now: datetime):
    await quiz.record_session([QuizAnswer(1, False), QuizAnswer(2, True)], now)

    missed, answered = pool.read(1), pool.read(2)
    assert missed.review.next_due_date == date(2024, 3, 2)
    assert missed.quiz_usage_count == 1
    assert missed.modified_at == now
    assert answered.review.next_due_date == date(2024, 4, 1)
    assert answered.quiz_usage_count == 1


def test_unscramble(quiz: QuizService, pool):
    tasks = quiz.select_unscramble(4).unwrap()

    assert len(tasks) == 4
    for task in tasks:
        assert sorted(task.scrambled) == sorted(task.correct_word)
        assert task.scrambled != task.correct_word
        assert MASK in task.hint


def test_unscramble_needs_a_word(quiz: QuizService):
    result = quiz.select_unscramble()

    assert isinstance(result.error, InsufficientPoolError)


def test_scramble_single_letter_words(quiz: QuizService):
    assert quiz.scramble("aaa") == "aaa"
    word = fake.pystr(min_chars=5, max_chars=8)
    assert sorted(quiz.scramble(word)) == sorted(word)
