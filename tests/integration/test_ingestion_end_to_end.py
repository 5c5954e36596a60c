"""
End-to-End Ingestion Tests
==========================

Real fetcher, processor and SQLite store against a local HTTP server:
feeds are fetched, posts stored once, and failing feeds retried on the
next cycle.
"""

import pytest
import pytest_asyncio
from datetime import datetime, timezone

from aiohttp import web
from aiohttp.test_utils import TestServer

from feedworker.config.settings import WorkerSettings
from feedworker.ingestion.feed_fetcher import FeedFetcher
from feedworker.scheduler.feed_worker import FeedWorker


class FeedHost:
    """Mutable set of documents served by the test server."""

    def __init__(self):
        self.documents = {}
        self.status = {}
        self.hits = {}

    async def handle(self, request):
        name = request.match_info["name"]
        self.hits[name] = self.hits.get(name, 0) + 1

        status = self.status.get(name, 200)
        if status != 200:
            return web.Response(status=status, text="unavailable")
        if name not in self.documents:
            return web.Response(status=404, text="not found")
        return web.Response(text=self.documents[name], content_type="application/rss+xml")


@pytest_asyncio.fixture
async def feed_host():
    host = FeedHost()
    app = web.Application()
    app.router.add_get("/feeds/{name}", host.handle)

    server = TestServer(app)
    await server.start_server()
    host.url = lambda name: str(server.make_url(f"/feeds/{name}"))
    yield host
    await server.close()


@pytest.fixture
def worker(store):
    return FeedWorker(
        store,
        WorkerSettings(interval_seconds=1, batch_size=10, fetch_timeout=5),
        fetcher=FeedFetcher(timeout=5),
    )


class TestIngestionEndToEnd:
    """Complete fetch, store and mark-fetched workflow."""

    @pytest.mark.asyncio
    async def test_two_cycles_store_each_post_once(self, feed_host, make_feed, store, worker, sample_rss):
        feed_host.documents["news"] = sample_rss
        feed = make_feed(url=feed_host.url("news"))

        first = await worker.run_cycle()
        second = await worker.run_cycle()

        assert first.new_entries == 2
        assert second.new_entries == 0
        assert second.duplicates == 2
        assert feed_host.hits["news"] == 2

        posts = store.posts.get_posts_for_feed(feed.id)
        assert {p.url for p in posts} == {"https://example.com/posts/1", "https://example.com/posts/2"}
        newest = posts[0]
        assert newest.title == "Second Post"
        assert newest.published_at == datetime(2006, 1, 3, 10, 0, 0, tzinfo=timezone.utc)
        assert store.feeds.get_feed_by_id(feed.id).last_fetched_at is not None

    @pytest.mark.asyncio
    async def test_failing_feed_recovers_next_cycle(self, feed_host, make_feed, store, worker, sample_rss, empty_rss):
        feed_host.documents["flaky"] = sample_rss
        feed_host.documents["quiet"] = empty_rss
        feed_host.status["flaky"] = 503
        flaky = make_feed(url=feed_host.url("flaky"))
        quiet = make_feed(url=feed_host.url("quiet"))

        first = await worker.run_cycle()

        assert first.succeeded == 1
        assert first.failed == 1
        assert store.feeds.get_feed_by_id(flaky.id).never_fetched
        assert not store.feeds.get_feed_by_id(quiet.id).never_fetched
        assert store.posts.count_posts_for_feed(flaky.id) == 0

        # Never-fetched feeds are selected ahead of fetched ones
        due = store.select_feeds_due(1)
        assert due[0].id == flaky.id

        feed_host.status["flaky"] = 200
        second = await worker.run_cycle()

        assert second.failed == 0
        assert store.posts.count_posts_for_feed(flaky.id) == 2
        assert not store.feeds.get_feed_by_id(flaky.id).never_fetched

    @pytest.mark.asyncio
    async def test_malformed_and_missing_feeds_do_not_block_others(self, feed_host, make_feed, store, worker, sample_rss):
        feed_host.documents["good"] = sample_rss
        feed_host.documents["broken"] = "definitely not a syndication document"
        good = make_feed(url=feed_host.url("good"))
        broken = make_feed(url=feed_host.url("broken"))
        missing = make_feed(url=feed_host.url("missing"))

        result = await worker.run_cycle()

        assert result.selected == 3
        assert result.succeeded == 1
        assert store.posts.count_posts_for_feed(good.id) == 2
        for feed in (broken, missing):
            assert store.feeds.get_feed_by_id(feed.id).never_fetched

    @pytest.mark.asyncio
    async def test_run_forever_bounded(self, feed_host, make_feed, store, recorded_sleep, sample_rss):
        feed_host.documents["news"] = sample_rss
        feed = make_feed(url=feed_host.url("news"))
        sleeps, sleep = recorded_sleep
        worker = FeedWorker(
            store,
            WorkerSettings(interval_seconds=15, batch_size=5, fetch_timeout=5),
            sleep=sleep,
        )

        cycles = await worker.run_forever(max_cycles=2)

        assert cycles == 2
        assert sleeps == [15]
        assert feed_host.hits["news"] == 2
        assert store.posts.count_posts_for_feed(feed.id) == 2


@pytest.fixture
def recorded_sleep():
    calls = []

    async def sleep(seconds):
        calls.append(seconds)

    return calls, sleep
