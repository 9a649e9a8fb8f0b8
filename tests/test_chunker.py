"""Tests for break detection, time-window and token-budget chunking."""

from datetime import timedelta

import pytest

from conftest import costed, make_message

from discord_chunker.chunker import (
    chunk_by_time,
    chunk_by_tokens,
    chunk_messages,
    detect_conversation_breaks,
    get_chunk,
    get_chunk_content,
    parse_duration,
)
from discord_chunker.estimator import sort_messages
from discord_chunker.exceptions import ChunkIndexError, InvalidDurationError
from discord_chunker.formatter import format_message


# Conversation breaks

def test_detects_single_gap():
    msgs = costed((0, 1), (5, 1), (40, 1))
    breaks = detect_conversation_breaks(msgs, gap_minutes=30)
    assert len(breaks) == 1
    b = breaks[0]
    assert (b.after_index, b.before_index) == (1, 2)
    assert b.gap_minutes == 35
    assert b.gap == timedelta(minutes=35)
    assert (b.before_message_id, b.after_message_id) == ("m1", "m2")


def test_gap_equal_to_threshold_is_a_break():
    msgs = costed((0, 1), (30, 1))
    assert len(detect_conversation_breaks(msgs, gap_minutes=30)) == 1


def test_gap_minutes_rounds_half_up():
    msgs = [make_message("a", 0), make_message("b", 30.5)]
    assert detect_conversation_breaks(msgs, gap_minutes=30)[0].gap_minutes == 31


def test_no_breaks_for_short_input():
    assert detect_conversation_breaks([], 30) == []
    assert detect_conversation_breaks(costed((0, 1)), 30) == []


# Durations

@pytest.mark.parametrize(
    "duration, expected",
    [
        ("2h", timedelta(milliseconds=7_200_000)),
        ("15m", timedelta(minutes=15)),
        ("1d", timedelta(days=1)),
        ("3w", timedelta(weeks=3)),
    ],
)
def test_parse_duration(duration, expected):
    assert parse_duration(duration) == expected


@pytest.mark.parametrize("duration", ["bogus", "", "h", "1", "1H", "1.5h", " 1h", "0h", "000m", "-1h", "1y", None])
def test_parse_duration_rejects(duration):
    with pytest.raises(InvalidDurationError):
        parse_duration(duration)


@pytest.mark.parametrize("duration", ["99999999999w", "9" * 5000 + "m"])
def test_parse_duration_clamps_huge_values(duration):
    assert parse_duration(duration) == timedelta.max


def test_chunk_by_time_huge_window_is_one_chunk(counter):
    msgs = costed((0, 1), (1, 1), (10_000, 1))
    chunks = chunk_by_time(msgs, "99999999999w", counter)
    assert [c.message_ids for c in chunks] == [["m0", "m1", "m2"]]


def test_invalid_duration_is_a_value_error():
    with pytest.raises(ValueError, match="Invalid duration format: bogus"):
        parse_duration("bogus")


# Time windows

def test_chunk_by_time_reanchors_windows(counter):
    msgs = costed((0, 1), (30, 2), (59, 3), (60, 4), (61, 5), (200, 6))
    chunks = chunk_by_time(msgs, "1h", counter)

    assert [c.message_ids for c in chunks] == [["m0", "m1", "m2"], ["m3", "m4"], ["m5"]]
    assert [c.token_count for c in chunks] == [6, 9, 6]
    assert all(c.natural_break is None for c in chunks)
    assert chunks[1].start_time == msgs[3].timestamp
    assert chunks[1].end_time == msgs[4].timestamp


def test_chunk_by_time_sorts_input(counter):
    msgs = costed((120, 1), (0, 1), (10, 1))
    chunks = chunk_by_time(msgs, "1h", counter)
    assert [c.message_ids for c in chunks] == [["m1", "m2"], ["m0"]]


def test_chunk_by_time_validates_before_empty_check(counter):
    assert chunk_by_time([], "1d", counter) == []
    with pytest.raises(InvalidDurationError):
        chunk_by_time([], "bogus", counter)


# Token budget

def test_natural_break_preferred(counter):
    msgs = costed((0, 6), (31, 4), (32, 4))
    chunks = chunk_by_tokens(msgs, max_tokens=9, counter=counter, gap_minutes=30)

    assert [c.message_ids for c in chunks] == [["m0"], ["m1", "m2"]]
    assert [c.natural_break for c in chunks] == [True, True]
    assert [c.token_count for c in chunks] == [6, 8]


def test_over_tolerance_splits_even_after_natural_break(counter):
    msgs = costed((0, 5), (31, 5), (32, 5))
    chunks = chunk_by_tokens(msgs, max_tokens=8, counter=counter, gap_minutes=30)

    assert [c.message_ids for c in chunks] == [["m0"], ["m1"], ["m2"]]
    assert [c.natural_break for c in chunks] == [True, False, True]


def test_hard_split_when_no_breaks(counter):
    msgs = costed((0, 10), (1, 10), (2, 10), (3, 10))
    chunks = chunk_by_tokens(msgs, max_tokens=10, counter=counter, gap_minutes=30)

    assert [c.message_count for c in chunks] == [1, 1, 1, 1]
    assert [c.natural_break for c in chunks] == [False, False, False, True]


def test_overshoot_within_tolerance_waits(counter):
    msgs = costed((0, 6), (1, 5), (2, 1))
    chunks = chunk_by_tokens(msgs, max_tokens=10, counter=counter)

    # 11 tokens stays under 10 * 1.1; the next message tips it over
    assert [c.message_ids for c in chunks] == [["m0", "m1"], ["m2"]]
    assert chunks[0].token_count == 11
    assert chunks[0].natural_break is False


def test_overshoot_is_tunable(counter):
    msgs = costed((0, 6), (1, 5))
    chunks = chunk_by_tokens(msgs, max_tokens=10, counter=counter, overshoot=1.0)
    assert [c.message_count for c in chunks] == [1, 1]


def test_break_under_budget_does_not_split(counter):
    msgs = costed((0, 2), (60, 2), (120, 2))
    chunks = chunk_by_tokens(msgs, max_tokens=100, counter=counter)
    assert len(chunks) == 1
    assert chunks[0].natural_break is True


def test_oversized_message_gets_own_chunk(counter):
    msgs = costed((0, 50), (1, 3))
    chunks = chunk_by_tokens(msgs, max_tokens=10, counter=counter)
    assert [c.message_ids for c in chunks] == [["m0"], ["m1"]]
    assert chunks[0].token_count == 50

    alone = chunk_by_tokens(costed((0, 50)), max_tokens=10, counter=counter)
    assert len(alone) == 1
    assert alone[0].token_count == 50


def test_chunk_by_tokens_empty(counter):
    assert chunk_by_tokens([], 100, counter) == []


def test_chunk_by_tokens_rejects_bad_budget(counter):
    with pytest.raises(ValueError):
        chunk_by_tokens(costed((0, 1)), 0, counter)
    with pytest.raises(ValueError):
        chunk_by_tokens(costed((0, 1)), 10, counter, overshoot=0.5)


def test_chunk_by_tokens_uses_sorted_indices_for_breaks(counter):
    # Unsorted input: the break must be found between the sorted neighbours
    msgs = costed((45, 4), (0, 6), (1, 1))
    chunks = chunk_by_tokens(msgs, max_tokens=9, counter=counter)
    assert [c.message_ids for c in chunks] == [["m1", "m2"], ["m0"]]
    assert chunks[0].natural_break is True


# Properties over a mixed batch

@pytest.fixture
def batch():
    pairs = [(0, 3), (2, 7), (3, 1), (50, 4), (51, 9), (52, 2), (200, 5), (201, 8), (202, 1), (203, 6),
            (400, 12), (1500, 2), (1501, 3)]
    msgs = costed(*pairs)
    # Shuffle deterministically
    return msgs[::2] + msgs[1::2]


@pytest.mark.parametrize(
    "options",
    [
        {"by_tokens": 10},
        {"by_tokens": 3, "gap_minutes": 5},
        {"by_tokens": 1000},
        {"by_time": "1h"},
        {"by_time": "1d"},
        {"by_time": "1m"},
    ],
)
def test_chunks_partition_sorted_input(batch, counter, options):
    chunks = chunk_messages(batch, counter, **options)
    expected = [m.id for m in sort_messages(batch)]

    assert [mid for c in chunks for mid in c.message_ids] == expected
    for c in chunks:
        assert c.messages
        assert c.token_count == sum(counter.count(format_message(m)) for m in c.messages)
        stamps = [m.timestamp for m in c.messages]
        assert stamps == sorted(stamps)
        assert c.start_time <= c.end_time


def test_chunk_messages_needs_exactly_one_strategy(counter):
    with pytest.raises(ValueError):
        chunk_messages(costed((0, 1)), counter)
    with pytest.raises(ValueError):
        chunk_messages(costed((0, 1)), counter, by_time="1h", by_tokens=10)


# Accessor

def test_get_chunk_content(counter):
    msgs = costed((0, 1), (1, 2))
    chunks = chunk_by_tokens(msgs, 100, counter)
    assert get_chunk_content(chunks, 0) == "\n".join(format_message(m) for m in msgs)


def test_get_chunk_content_out_of_range(counter):
    chunks = chunk_by_tokens(costed((0, 1)), 100, counter)
    assert get_chunk_content(chunks, 5) is None
    assert get_chunk_content(chunks, -1) is None
    assert get_chunk_content([], 0) is None


def test_get_chunk_reports_valid_range(counter):
    chunks = chunk_by_tokens(costed((0, 5), (1, 5)), 5, counter)
    assert get_chunk(chunks, 1) is chunks[1]

    with pytest.raises(ChunkIndexError) as excinfo:
        get_chunk(chunks, 2)
    assert excinfo.value.valid_range == range(2)
    assert "out of range (0-1)" in str(excinfo.value)
