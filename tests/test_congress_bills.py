import httpx
import pytest

from statepulse.ingestion.congress_bills import (
    CongressBillsAdapter,
    CongressHistoricalBackfill,
    transform_congress_bill,
)
from statepulse.ingestion.errors import BackfillAborted, RateLimited
from statepulse.models.legislation import LegislativeRecord
from statepulse.pipelines.congress_historical import resolve_congresses


def list_entry(bill_type: str, number: str, title: str, congress: int = 119) -> dict:
    return {
        "congress": congress,
        "type": bill_type,
        "number": number,
        "title": title,
        "updateDate": "2026-02-01",
    }


def detail(bill_type: str, number: str, title: str, congress: int = 119) -> dict:
    return {
        "bill": {
            "congress": congress,
            "type": bill_type,
            "number": number,
            "title": title,
            "introducedDate": "2026-01-10",
            "latestAction": {"actionDate": "2026-01-10", "text": "Referred to committee"},
            "policyArea": {"name": "Science, Technology, Communications"},
            "sponsors": [{"bioguideId": "D000001", "fullName": "Rep. Doe, Jane [D-CA-1]"}],
        }
    }


def congress_api(routes: dict, requests: list = None):
    """Serve JSON by path below /v3; anything else is a 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        path = request.url.path.removeprefix("/v3")
        if path in routes:
            return httpx.Response(200, json=routes[path])
        return httpx.Response(404, json={"error": "not found"})

    return handler


class TestTransform:

    def test_maps_bill(self):
        record = transform_congress_bill(
            detail("HR", "1", "Artificial Intelligence Risk Act")["bill"],
            actions=[{"actionDate": "2026-01-10", "text": "Introduced in House", "type": "IntroReferral"}],
            cosponsors=[{"bioguideId": "S000002", "firstName": "John", "lastName": "Smith"}],
            summaries=[{"text": "Requires risk assessments.", "actionDesc": "Introduced in House"}],
        )

        assert record.id == "congress-bill-119-hr-1"
        assert record.identifier == "HR 1"
        assert record.session == "119"
        assert record.source_url == "https://www.congress.gov/bill/119th-congress/house-bill/1"
        assert [s.role for s in record.sponsors] == ["sponsor", "cosponsor"]
        assert record.sponsors[1].name == "John Smith"
        assert record.abstract_texts == ["Requires risk assessments."]
        assert record.subjects == ["Science, Technology, Communications"]

    def test_public_law_sets_enacted_date(self):
        record = transform_congress_bill(
            detail("S", "5", "AI Act")["bill"],
            actions=[
                {"actionDate": "2026-01-10", "text": "Introduced in Senate"},
                {"actionDate": "2026-05-01", "text": "Became Public Law No: 119-20."},
            ],
        )

        assert record.enacted_at.date().isoformat() == "2026-05-01"
        assert record.latest_action_description == "Became Public Law No: 119-20."


class TestCongressBillsAdapter:

    @pytest.mark.asyncio
    async def test_relevant_new_bills_are_inserted(self, store, db, checkpoints, sleep, fetcher_factory):
        handler = congress_api({
            "/bill/119": {"bills": [
                list_entry("HR", "1", "Artificial Intelligence Risk Act"),
                list_entry("S", "2", "Farm Credit Act"),
            ]},
            "/bill/119/hr/1": detail("HR", "1", "Artificial Intelligence Risk Act"),
            "/bill/119/hr/1/actions": {"actions": [{"actionDate": "2026-01-10", "text": "Introduced in House"}]},
            "/bill/119/hr/1/cosponsors": {"cosponsors": []},
            "/bill/119/hr/1/summaries": {"summaries": []},
            "/bill/119/hr/1/text": {"textVersions": []},
            "/bill/119/s/2": detail("S", "2", "Farm Credit Act"),
            "/bill/119/s/2/summaries": {"summaries": [{"text": "Adjusts farm lending limits."}]},
        })
        adapter = CongressBillsAdapter(store, fetcher_factory(handler), checkpoints, congress=119, sleep=sleep)

        stats = await adapter.run(since="2026-01-01")

        assert (stats["inserted"], stats["filtered"]) == (1, 1)
        doc = db["legislation"].docs["congress-bill-119-hr-1"]
        assert doc["summary"] is None
        assert doc["jurisdictionName"] == "United States Congress"

    @pytest.mark.asyncio
    async def test_summary_mention_admits_bill(self, store, db, checkpoints, sleep, fetcher_factory):
        handler = congress_api({
            "/bill/119": {"bills": [list_entry("HR", "9", "Consumer Protection Act")]},
            "/bill/119/hr/9": detail("HR", "9", "Consumer Protection Act"),
            "/bill/119/hr/9/summaries": {"summaries": [{"text": "Regulates artificial intelligence in lending."}]},
        })
        adapter = CongressBillsAdapter(store, fetcher_factory(handler), checkpoints, congress=119, sleep=sleep)

        stats = await adapter.run(since="2026-01-01")

        assert stats["inserted"] == 1
        assert "congress-bill-119-hr-9" in db["legislation"].docs

    @pytest.mark.asyncio
    async def test_list_request_is_sorted_and_capped(self, store, checkpoints, sleep, fetcher_factory):
        requests = []
        full_page = {"bills": [list_entry("HR", str(n), "Roads") for n in range(1, 21)]}
        routes = {"/bill/119": full_page}
        for n in range(1, 21):
            routes[f"/bill/119/hr/{n}"] = detail("HR", str(n), "Roads")
        adapter = CongressBillsAdapter(
            store, fetcher_factory(congress_api(routes, requests)), checkpoints, congress=119, sleep=sleep,
        )
        adapter.max_offset = 40

        await adapter.run(since="2026-01-01")

        offsets = [r.url.params["offset"] for r in requests if r.url.path == "/v3/bill/119"]
        assert offsets == ["0", "20"]
        assert requests[0].url.params["sort"] == "updateDate desc"

    @pytest.mark.asyncio
    async def test_rate_limited_detail_stops_after_its_batch(self, store, db, checkpoints, sleep, fetcher_factory):
        requests = []
        routes = congress_api({
            "/bill/119": {"bills": [
                list_entry("HR", "1", "Artificial Intelligence Risk Act"),
                list_entry("S", "2", "Artificial Intelligence Labeling Act"),
            ]},
            "/bill/119/hr/1": detail("HR", "1", "Artificial Intelligence Risk Act"),
            "/bill/119/hr/1/actions": {"actions": []},
            "/bill/119/hr/1/cosponsors": {"cosponsors": []},
            "/bill/119/hr/1/summaries": {"summaries": []},
            "/bill/119/hr/1/text": {"textVersions": []},
        }, requests)

        def handler(request):
            if request.url.path == "/v3/bill/119/s/2":
                return httpx.Response(429)
            return routes(request)

        adapter = CongressBillsAdapter(
            store, fetcher_factory(handler, max_consecutive_throttles=0), checkpoints, congress=119, sleep=sleep,
        )

        with pytest.raises(RateLimited):
            await adapter.run(since="2026-01-01")

        assert "congress-bill-119-hr-1" in db["legislation"].docs
        assert [r.url.path for r in requests].count("/v3/bill/119") == 1
        checkpoint = checkpoints.load("congress-bills")
        assert checkpoint.current_partition == 119
        assert checkpoint.cursor_position == 0
        assert not checkpoint.is_completed(119)


class TestCongressHistoricalBackfill:

    @pytest.mark.asyncio
    async def test_existing_bill_gets_activity_refresh_only(self, store, db, checkpoints, sleep, fetcher_factory):
        await store.upsert_legislation(LegislativeRecord(
            id="congress-bill-118-hr-5",
            identifier="HR 5",
            title="Stored title",
            jurisdiction_name="United States Congress",
            summary="Generated summary",
        ))
        handler = congress_api({
            "/bill/118": {"bills": [list_entry("HR", "5", "Upstream title", congress=118)]},
            "/bill/118/hr/5": detail("HR", "5", "Upstream title", congress=118),
            "/bill/118/hr/5/actions": {"actions": [{"actionDate": "2024-03-01", "text": "Became Public Law No: 118-9."}]},
            "/bill/118/hr/5/cosponsors": {"cosponsors": [{"fullName": "Sen. Smith, John"}]},
            "/bill/118/hr/5/summaries": {"summaries": []},
        })
        adapter = CongressHistoricalBackfill(
            store, fetcher_factory(handler), checkpoints, congresses=[118], sleep=sleep,
        )

        stats = await adapter.run()

        assert stats["updated"] == 1
        doc = db["legislation"].docs["congress-bill-118-hr-5"]
        assert doc["title"] == "Stored title"
        assert doc["summary"] == "Generated summary"
        assert len(doc["sponsors"]) == 2
        assert doc["enactedAt"] is not None

    @pytest.mark.asyncio
    async def test_restarts_after_rate_limit(self, store, checkpoints, sleep, fetcher_factory):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(429)
            return httpx.Response(200, json={"bills": []})

        adapter = CongressHistoricalBackfill(
            store, fetcher_factory(handler, max_consecutive_throttles=0), checkpoints,
            congresses=[118], sleep=sleep,
        )

        await adapter.run_with_restarts(max_restarts=3, restart_delay=3600)

        assert sleep.calls == [3600]
        assert len(calls) == 2
        assert checkpoints.load("congress-historical") is None

    @pytest.mark.asyncio
    async def test_resumes_from_saved_offset_after_restart(self, store, checkpoints, sleep, fetcher_factory):
        offsets = []

        def handler(request):
            offsets.append(request.url.params["offset"])
            if len(offsets) == 2:
                return httpx.Response(429)
            if request.url.params["offset"] == "0":
                # Full page of bills without a congress: all skipped as malformed
                return httpx.Response(200, json={"bills": [{"type": "HR"}] * 250})
            return httpx.Response(200, json={"bills": []})

        adapter = CongressHistoricalBackfill(
            store, fetcher_factory(handler, max_consecutive_throttles=0), checkpoints,
            congresses=[118], sleep=sleep,
        )

        await adapter.run_with_restarts(max_restarts=1, restart_delay=60)

        assert offsets == ["0", "250", "250"]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_restarts(self, store, checkpoints, sleep, fetcher_factory):
        handler = lambda request: httpx.Response(429)
        adapter = CongressHistoricalBackfill(
            store, fetcher_factory(handler, max_consecutive_throttles=0), checkpoints,
            congresses=[118], sleep=sleep,
        )

        with pytest.raises(BackfillAborted):
            await adapter.run_with_restarts(max_restarts=2, restart_delay=60)

        assert sleep.calls == [60, 60]
        assert checkpoints.load("congress-historical").current_partition == 118

    @pytest.mark.asyncio
    async def test_progress_resets_restart_count(self, store, checkpoints, sleep, fetcher_factory):
        seen = []

        def handler(request):
            offset = request.url.params["offset"]
            first_visit = offset not in seen
            seen.append(offset)
            if offset != "0" and first_visit:
                return httpx.Response(429)
            if offset in ("0", "250"):
                return httpx.Response(200, json={"bills": [{"type": "HR"}] * 250})
            return httpx.Response(200, json={"bills": []})

        adapter = CongressHistoricalBackfill(
            store, fetcher_factory(handler, max_consecutive_throttles=0), checkpoints,
            congresses=[118], sleep=sleep,
        )

        stats = await adapter.run_with_restarts(max_restarts=1, restart_delay=60)

        assert seen == ["0", "250", "250", "500", "500"]
        assert stats["malformed"] == 500
        assert stats["processed"] == 500
        assert sleep.calls.count(60) == 2


class TestResolveCongresses:

    def test_default_sessions(self):
        assert resolve_congresses() == [119, 118, 117, 116]

    def test_single_congress(self):
        assert resolve_congresses(congress=115) == [115]

    def test_range_is_newest_first(self):
        assert resolve_congresses(start=115, end=117) == [117, 116, 115]

    def test_range_defaults_to_latest(self):
        assert resolve_congresses(start=117) == [119, 118, 117]
