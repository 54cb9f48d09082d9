"""Tests for the Reddit adapter."""

from unittest.mock import AsyncMock

import aiohttp
import pytest

from sentiment_aggregator.exceptions import SourceError
from sentiment_aggregator.models.dtos import ALL_TICKERS
from sentiment_aggregator.sources.reddit import RedditAdapter, mentions_any, post_text


def listing(*posts):
    return {"data": {"children": [{"data": {"title": title, "selftext": body}} for title, body in posts]}}


def make_adapter(subreddits=("wallstreetbets", "stocks")) -> RedditAdapter:
    return RedditAdapter(
        subreddits=list(subreddits),
        search_terms=["SPY", "$QQQ"],
        request_delay=0,
    )


def test_mentions_any_is_case_insensitive():
    assert mentions_any("spy is flat", ["SPY"])
    assert not mentions_any("nothing here", ["SPY", "QQQ"])


def test_post_text_joins_title_and_body():
    assert post_text({"data": {"title": "Title", "selftext": None}}) == "Title "


@pytest.mark.asyncio
async def test_fetch_filters_and_classifies():
    adapter = make_adapter()
    adapter._get_json = AsyncMock(side_effect=[
        listing(
            ("SPY calls printing", "to the moon"),
            ("Weekend thread", "what are you doing"),
            ("Loading puts", "on $QQQ before the dump"),
        ),
        listing(("SPY", "flat day")),
    ])

    tallies = await adapter.fetch()

    assert len(tallies) == 1
    tally = tallies[0]
    assert tally.source == "reddit"
    assert tally.ticker == ALL_TICKERS
    assert (tally.bullish, tally.bearish, tally.neutral) == (1, 1, 1)
    assert adapter._get_json.await_args_list[0].args[1] == "https://www.reddit.com/r/wallstreetbets/hot.json"
    assert adapter._get_json.await_args_list[0].kwargs["params"] == {"limit": 50}


@pytest.mark.asyncio
async def test_no_relevant_posts_returns_nothing():
    adapter = make_adapter(subreddits=("stocks",))
    adapter._get_json = AsyncMock(return_value=listing(("Daily thread", "chat here")))

    assert await adapter.fetch() == []


@pytest.mark.asyncio
async def test_one_subreddit_failing_is_skipped():
    adapter = make_adapter()
    adapter._get_json = AsyncMock(side_effect=[aiohttp.ClientError("403"), listing(("SPY moon", ""))])

    tallies = await adapter.fetch()

    assert tallies[0].bullish == 1


@pytest.mark.asyncio
async def test_all_subreddits_failing_raises():
    adapter = make_adapter()
    adapter._get_json = AsyncMock(side_effect=aiohttp.ClientError("blocked"))

    with pytest.raises(SourceError):
        await adapter.fetch()
