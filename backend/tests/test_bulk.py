"""Tests for the bulk coordinator: aggregation, ordering, batch cap and isolation."""

import asyncio

import pytest

from blocklisthub.core.kinds import IP
from blocklisthub.services.bulk import BulkCoordinator, parse_value_list
from blocklisthub.services.transitions import Outcome

USER = "U123"
TEAM = "T1"


class TestParseValueList:
    def test_trims_and_drops_blanks(self):
        assert parse_value_list(" 1.1.1.1, ,2.2.2.2,, ") == ["1.1.1.1", "2.2.2.2"]

    def test_first_occurrence_wins(self):
        assert parse_value_list("b,a,b,c,a") == ["b", "a", "c"]

    def test_empty(self):
        assert parse_value_list(None) == []
        assert parse_value_list("   ") == []


@pytest.mark.asyncio
class TestBulkAggregate:
    async def test_duplicates_collapsed_before_processing(self, ip_bulk):
        report = await ip_bulk.run(1, ip_bulk.prepare(["1.1.1.1", "bad", "1.1.1.1"]), None)
        assert report.total == 2
        assert report.count(Outcome.ADDED) == 1
        assert report.count(Outcome.INVALID) == 1
        assert report.count(Outcome.ERROR) == 0

    async def test_rendered_report(self, ip_bulk):
        text = await ip_bulk.bulk_add(USER, TEAM, "1.1.1.1,bad,1.1.1.1", "botnet")
        assert text == (
            ":warning: *Bulk result overview*\n"
            "• Total requested: 2\n"
            "• Added: 1\n"
            "• Reactivated: 0\n"
            "• Already active: 0\n"
            "• Invalid: 1\n"
            "• Errors: 0\n"
            "\n"
            "*Details:*\n"
            "• :white_check_mark: Added `1.1.1.1`\n"
            "• :warning: Invalid `bad`\n"
        )

    async def test_textual_ip_variants_collapse(self, ip_bulk):
        assert ip_bulk.prepare(["::1", "0:0::1", "bad", "bad"]) == ["::1", "bad"]

    async def test_reason_shared_by_all_items(self, ip_bulk):
        await ip_bulk.bulk_add(USER, TEAM, "1.1.1.1,2.2.2.2", "shared")
        rows = ip_bulk.engine.store.rows.values()
        assert {r.reason for r in rows} == {"shared"}

    async def test_reactivated_bucket(self, ip_bulk):
        engine = ip_bulk.engine
        await engine.add(USER, TEAM, "3.3.3.3")
        await engine.deactivate(USER, TEAM, "3.3.3.3")
        report = await ip_bulk.run(1, ["3.3.3.3"], "back")
        assert report.count(Outcome.REACTIVATED) == 1
        assert report.marker.value == ":white_check_mark:"

    async def test_empty_input(self, ip_bulk):
        msg = await ip_bulk.bulk_add(USER, TEAM, " , ", None)
        assert msg == ":warning: No IPs provided for bulk operation."


@pytest.mark.asyncio
class TestBulkOrdering:
    async def test_slow_item_keeps_its_position(self, make_engine):
        engine = make_engine(IP, delays={"1.1.1.1": 0.2})
        bulk = BulkCoordinator(engine, concurrency=10)
        values = ["1.1.1.1", "2.2.2.2", "3.3.3.3", "4.4.4.4"]

        report = await bulk.run(1, values, None)

        assert [item.value for item in report.items] == values
        # the slow item was written last
        ids = {r.value: r.id for r in engine.store.rows.values()}
        assert ids["1.1.1.1"] == max(ids.values())

    async def test_concurrency_one_still_ordered(self, make_engine):
        engine = make_engine(IP, delays={"2.2.2.2": 0.05})
        bulk = BulkCoordinator(engine, concurrency=1)
        report = await bulk.run(1, ["2.2.2.2", "1.1.1.1"], None)
        assert [i.value for i in report.items] == ["2.2.2.2", "1.1.1.1"]


@pytest.mark.asyncio
class TestBulkConcurrency:
    @staticmethod
    def _track_in_flight(engine) -> dict:
        """Wrap store lookups and record the peak number running at once."""
        stats = {"current": 0, "peak": 0}
        lookup = engine.store.find_by_canonical_value

        async def _tracked(value):
            stats["current"] += 1
            stats["peak"] = max(stats["peak"], stats["current"])
            try:
                await asyncio.sleep(0.01)
                return await lookup(value)
            finally:
                stats["current"] -= 1

        engine.store.find_by_canonical_value = _tracked
        return stats

    async def test_default_ceiling_is_ten(self, ip_engine):
        stats = self._track_in_flight(ip_engine)
        bulk = BulkCoordinator(ip_engine)
        csv = ",".join(f"10.3.0.{i}" for i in range(1, 60))

        text = await bulk.bulk_add(USER, TEAM, csv, None)

        assert "• Added: 59" in text
        assert stats["peak"] == 10
        assert stats["current"] == 0

    async def test_custom_ceiling(self, ip_engine):
        stats = self._track_in_flight(ip_engine)
        bulk = BulkCoordinator(ip_engine, concurrency=3)
        report = await bulk.run(1, [f"10.4.0.{i}" for i in range(1, 51)], None)

        assert report.count(Outcome.ADDED) == 50
        assert stats["peak"] == 3


@pytest.mark.asyncio
class TestBulkCap:
    async def test_over_cap_rejected_without_writes(self, ip_bulk):
        values = ",".join(f"10.0.{i // 256}.{i % 256}" for i in range(501))
        msg = await ip_bulk.bulk_add(USER, TEAM, values, "too many")

        assert msg == ":warning: Bulk limit exceeded. Max 500 IPs allowed per bulk."
        assert ip_bulk.engine.store.lookups == 0
        assert ip_bulk.engine.store.writes == 0
        assert ip_bulk.engine.operators.calls == 0

    async def test_exactly_cap_accepted(self, ip_bulk):
        values = ",".join(f"10.1.{i // 256}.{i % 256}" for i in range(500))
        msg = await ip_bulk.bulk_add(USER, TEAM, values, None)
        assert "• Added: 500" in msg

    async def test_cap_counts_after_dedup(self, ip_bulk):
        values = ",".join(["10.2.0.1"] * 600)
        msg = await ip_bulk.bulk_add(USER, TEAM, values, None)
        assert "• Total requested: 1" in msg


@pytest.mark.asyncio
class TestBulkIdempotenceAndIsolation:
    async def test_rerun_is_already_active(self, ip_bulk):
        payload = "1.1.1.1,2.2.2.2"
        await ip_bulk.bulk_add(USER, TEAM, payload, None)
        second = await ip_bulk.bulk_add(USER, TEAM, payload, None)

        assert "• Already active: 2" in second
        assert "• Added: 0" in second
        assert len(ip_bulk.engine.store.rows) == 2
        assert ip_bulk.engine.audit.actions == ["CREATE", "CREATE"]

    async def test_failing_item_does_not_abort_siblings(self, make_engine):
        engine = make_engine(IP, fail_on={"6.6.6.6"})
        bulk = BulkCoordinator(engine)
        text = await bulk.bulk_add(USER, TEAM, "1.1.1.1,6.6.6.6,2.2.2.2", None)

        assert text.startswith(":x: *Bulk result overview*")
        assert "• Added: 2" in text
        assert "• Errors: 1" in text
        assert "• :x: Error `6.6.6.6`: database is locked" in text

    async def test_operator_resolved_once(self, ip_bulk):
        await ip_bulk.bulk_add(USER, TEAM, "1.1.1.1,2.2.2.2,3.3.3.3", None)
        assert ip_bulk.engine.operators.calls == 1

    async def test_operator_failure_aborts_bulk(self, ip_bulk):
        ip_bulk.engine.operators.fail = True
        msg = await ip_bulk.bulk_add(USER, TEAM, "1.1.1.1", None)
        assert msg == ":x: Bulk operation failed: directory unavailable"
        assert ip_bulk.engine.store.writes == 0
