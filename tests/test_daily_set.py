"""Tests for the per-user daily word set."""

import datetime as dt
import json

import httpx
import pytest
from sqlalchemy import func, select

from tutor_app.daily_set import (
    DAILY_SET_PROMPT,
    DAILY_SET_SIZE,
    TOPICS,
    DailySetError,
    get_or_generate_daily_set,
    load_daily_rows,
    parse_daily_set,
)
from tutor_app.models import DailyWordEntry

DAY = dt.date(2025, 6, 1)


async def _count(db, user_id="user1", day=DAY):
    res = await db.execute(
        select(func.count()).select_from(DailyWordEntry)
        .where(DailyWordEntry.user_id == user_id, DailyWordEntry.date == day)
    )
    return res.scalar_one()


def test_prompt_lists_every_topic():
    for topic in TOPICS:
        assert topic in DAILY_SET_PROMPT
    assert '"topic"' in DAILY_SET_PROMPT
    assert '"latvian"' in DAILY_SET_PROMPT


def test_parse_daily_set(daily_set_json):
    parsed = parse_daily_set(daily_set_json)
    assert parsed.topic == "Food"
    assert [w.latvian for w in parsed.words] == ["maize", "piens", "siers", "ābols", "zupa"]


@pytest.mark.parametrize("raw", [
    "not json at all",
    "```json\n{}\n```",
    "",
    "[]",
    json.dumps({"words": []}),
    json.dumps({"topic": "", "words": [{"latvian": "a", "english": "b"}] * 5}),
    json.dumps({"topic": "Food", "words": [{"latvian": "maize", "english": "bread"}] * 4}),
    json.dumps({"topic": "Food", "words": [{"latvian": "maize", "english": "bread"}] * 6}),
    json.dumps({"topic": "Food", "words": [{"latvian": "maize"}] * 5}),
])
def test_parse_rejects_bad_payloads(raw):
    with pytest.raises(DailySetError):
        parse_daily_set(raw)


def test_first_request_generates_and_stores(db_run, stub_generator, daily_set_json):
    generate = stub_generator(daily_set_json)

    async def scenario(db):
        daily = await get_or_generate_daily_set(db, "user1", DAY, generate)
        return daily, await _count(db)

    daily, count = db_run(scenario)

    assert generate.prompts == [DAILY_SET_PROMPT]
    assert daily.topic == "Food"
    assert daily.date == DAY
    assert len(daily.words) == DAILY_SET_SIZE
    assert count == DAILY_SET_SIZE
    assert {w.topic for w in daily.words} == {"Food"}
    assert daily.words[0].word == "maize"
    assert daily.words[0].translation == "bread"
    assert daily.words[0].context == "Es ēdu maizi."


def test_second_request_is_served_from_storage(db_run, stub_generator, daily_set_json):
    generate = stub_generator(daily_set_json)

    async def scenario(db):
        first = await get_or_generate_daily_set(db, "user1", DAY, generate)
        second = await get_or_generate_daily_set(db, "user1", DAY, generate)
        return first, second, await _count(db)

    first, second, count = db_run(scenario)

    assert len(generate.prompts) == 1
    assert count == DAILY_SET_SIZE
    assert second.topic == first.topic
    assert {w.id for w in second.words} == {w.id for w in first.words}
    assert {w.word for w in second.words} == {w.word for w in first.words}


def test_sets_are_per_user_and_per_day(db_run, stub_generator, daily_set_json):
    generate = stub_generator(daily_set_json)

    async def scenario(db):
        await get_or_generate_daily_set(db, "user1", DAY, generate)
        await get_or_generate_daily_set(db, "user2", DAY, generate)
        await get_or_generate_daily_set(db, "user1", DAY + dt.timedelta(days=1), generate)
        return await _count(db, "user1", DAY), await _count(db, "user2", DAY)

    assert db_run(scenario) == (DAILY_SET_SIZE, DAILY_SET_SIZE)
    assert len(generate.prompts) == 3


def test_malformed_response_writes_nothing_and_next_call_retries(db_run, stub_generator, daily_set_json):
    generate = stub_generator("Sure! Here are your words: maize, piens...", daily_set_json)

    async def scenario(db):
        with pytest.raises(DailySetError):
            await get_or_generate_daily_set(db, "user1", DAY, generate)
        after_failure = await _count(db)
        daily = await get_or_generate_daily_set(db, "user1", DAY, generate)
        return after_failure, daily, await _count(db)

    after_failure, daily, count = db_run(scenario)

    assert after_failure == 0
    assert len(generate.prompts) == 2
    assert daily.topic == "Food"
    assert count == DAILY_SET_SIZE


def test_wrong_word_count_writes_nothing(db_run, stub_generator):
    four = json.dumps({"topic": "Travel", "words": [{"latvian": "vilciens", "english": "train"}] * 4})
    generate = stub_generator(four)

    async def scenario(db):
        with pytest.raises(DailySetError):
            await get_or_generate_daily_set(db, "user1", DAY, generate)
        return await _count(db)

    assert db_run(scenario) == 0


def test_generator_errors_propagate(db_run, stub_generator):
    request = httpx.Request("POST", "https://llm.test/chat/completions")
    failure = httpx.HTTPStatusError("boom", request=request, response=httpx.Response(503, request=request))
    generate = stub_generator(failure)

    async def scenario(db):
        with pytest.raises(httpx.HTTPStatusError):
            await get_or_generate_daily_set(db, "user1", DAY, generate)
        return await _count(db)

    assert db_run(scenario) == 0


def test_partial_set_is_regenerated(db_run, stub_generator, daily_set_json):
    generate = stub_generator(daily_set_json)

    async def scenario(db):
        db.add_all([
            DailyWordEntry(user_id="user1", word="vējš", translation="wind", topic="Weather", date=DAY),
            DailyWordEntry(user_id="user1", word="lietus", translation="rain", topic="Weather", date=DAY),
        ])
        await db.commit()
        daily = await get_or_generate_daily_set(db, "user1", DAY, generate)
        rows = await load_daily_rows(db, "user1", DAY)
        return daily, rows

    daily, rows = db_run(scenario)

    assert len(generate.prompts) == 1
    assert daily.topic == "Food"
    assert len(rows) == DAILY_SET_SIZE
    assert {r.topic for r in rows} == {"Food"}
