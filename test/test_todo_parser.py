from datetime import datetime

import pytest

from calendar_assist.errors import AmbiguousInputError
from extraction.todo_parser import TodoParser

NOW = datetime(2024, 3, 13, 10, 15)


@pytest.fixture
def parser():
    return TodoParser()


def test_full_todo(parser):
    todo = parser.parse("Finish report for marketing tomorrow at 5pm urgent #work", NOW)
    assert todo.title == "Finish report"
    assert todo.due == datetime(2024, 3, 14, 17, 0)
    assert todo.priority == "urgent"
    assert todo.project == "Marketing"
    assert todo.tags == {"work"}
    assert todo.recurrence is None
    assert todo.completed is False


def test_time_without_date_is_due_today(parser):
    todo = parser.parse("call mom at 6pm", NOW)
    assert todo.title == "call mom"
    assert todo.due == datetime(2024, 3, 13, 18, 0)


def test_bare_hour_does_not_eat_other_numbers(parser):
    todo = parser.parse("email room 17 at 7", NOW)
    assert todo.title == "email room 17"
    assert todo.due == datetime(2024, 3, 13, 19, 0)


def test_no_temporal_signal_means_no_due_date(parser):
    todo = parser.parse("buy milk", NOW)
    assert todo.title == "buy milk"
    assert todo.due is None
    assert todo.priority == "medium"
    assert todo.project is None
    assert todo.tags == set()


def test_recurring_todo(parser):
    todo = parser.parse("standup every monday at 9am", NOW)
    assert todo.title == "standup"
    assert todo.recurrence is not None
    assert todo.recurrence.frequency == "weekly"
    assert todo.recurrence.interval == 1
    assert todo.due == datetime(2024, 3, 18, 9, 0)


def test_daily_recurrence_without_due_date(parser):
    todo = parser.parse("water plants every day", NOW)
    assert todo.title == "water plants"
    assert todo.recurrence.frequency == "daily"
    assert todo.due is None


def test_relative_offset_and_low_priority(parser):
    todo = parser.parse("review PR maybe #dev in 3 days", NOW)
    assert todo.title == "review PR"
    assert todo.priority == "low"
    assert todo.project is None
    assert todo.tags == {"dev"}
    assert todo.due == datetime(2024, 3, 16, 12, 0)


def test_title_falls_back_to_original_text(parser):
    todo = parser.parse("urgent", NOW)
    assert todo.title == "urgent"
    assert todo.priority == "urgent"


@pytest.mark.parametrize("text", ["", "   "])
def test_blank_input_asks_for_clarification(parser, text):
    with pytest.raises(AmbiguousInputError) as exc:
        parser.parse(text, NOW)
    assert exc.value.question
