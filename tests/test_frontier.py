"""Tests for the crawl frontier."""

from sitecheck.crawler.frontier import DEFAULT_BATCH_SIZE, DEFAULT_MAX_PAGES, Frontier


class TestEnqueue:
    def test_defaults(self):
        frontier = Frontier()
        assert frontier.max_pages == DEFAULT_MAX_PAGES == 1000
        assert frontier.batch_size == DEFAULT_BATCH_SIZE == 100

    def test_enqueues_new_url(self):
        frontier = Frontier()
        assert frontier.enqueue("https://ex.com/a") is True
        assert frontier.remaining == 1

    def test_skips_already_queued(self):
        frontier = Frontier()
        frontier.enqueue("https://ex.com/a")
        assert frontier.enqueue("https://ex.com/a") is False
        assert frontier.remaining == 1

    def test_skips_visited(self):
        frontier = Frontier()
        frontier.mark_visited("https://ex.com/a")
        assert frontier.enqueue("https://ex.com/a") is False

    def test_skips_checked(self):
        frontier = Frontier()
        frontier.mark_checked("https://ex.com/a.pdf")
        assert frontier.enqueue("https://ex.com/a.pdf") is False

    def test_never_requeues_after_dequeue(self):
        frontier = Frontier()
        frontier.enqueue("https://ex.com/a")
        for url in frontier.next_batch():
            frontier.mark_visited(url)
        assert frontier.enqueue("https://ex.com/a") is False
        assert frontier.remaining == 0


class TestMarkChecked:
    def test_first_claim_wins(self):
        frontier = Frontier()
        assert frontier.mark_checked("https://ex.com/img.png") is True
        assert frontier.mark_checked("https://ex.com/img.png") is False
        assert frontier.is_checked("https://ex.com/img.png")


class TestNextBatch:
    def _fill(self, frontier, n):
        for i in range(n):
            frontier.enqueue(f"https://ex.com/p{i}")

    def test_fifo_order(self):
        frontier = Frontier()
        self._fill(frontier, 3)
        got = []
        for url in frontier.next_batch():
            frontier.mark_visited(url)
            got.append(url)
        assert got == ["https://ex.com/p0", "https://ex.com/p1", "https://ex.com/p2"]

    def test_batch_size_limits_page_visits(self):
        frontier = Frontier(batch_size=2)
        self._fill(frontier, 5)
        got = []
        for url in frontier.next_batch():
            frontier.mark_visited(url)
            got.append(url)
        assert len(got) == 2
        assert frontier.remaining == 3

    def test_checked_resources_do_not_count_toward_batch(self):
        frontier = Frontier(batch_size=2)
        frontier.enqueue("https://ex.com/a.pdf")
        self._fill(frontier, 3)
        pages = []
        for url in frontier.next_batch():
            if url.endswith(".pdf"):
                frontier.mark_checked(url)
            else:
                frontier.mark_visited(url)
                pages.append(url)
        assert pages == ["https://ex.com/p0", "https://ex.com/p1"]

    def test_queued_url_checked_later_is_still_yielded(self):
        frontier = Frontier()
        frontier.enqueue("https://ex.com/contact")
        frontier.mark_checked("https://ex.com/contact")
        assert list(frontier.next_batch()) == ["https://ex.com/contact"]

    def test_stops_at_max_pages(self):
        frontier = Frontier(max_pages=3, batch_size=10)
        self._fill(frontier, 5)
        for url in frontier.next_batch():
            frontier.mark_visited(url)
        assert frontier.pages_visited == 3
        assert frontier.cap_reached
        assert frontier.remaining == 2
        assert list(frontier.next_batch()) == []

    def test_should_stop_halts_iteration(self):
        frontier = Frontier()
        self._fill(frontier, 3)
        stop = {"now": False}
        got = []
        for url in frontier.next_batch(lambda: stop["now"]):
            frontier.mark_visited(url)
            got.append(url)
            stop["now"] = True
        assert got == ["https://ex.com/p0"]

    def test_empty_frontier(self):
        assert list(Frontier().next_batch()) == []
