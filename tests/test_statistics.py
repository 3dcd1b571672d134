"""대시보드 통계 테스트 — 집계 및 Excel 내보내기.

Dashboard statistics tests. compute_statistics takes an explicit `now`
so the trailing 30-day window is deterministic.
"""

from datetime import timedelta
from io import BytesIO

from openpyxl import load_workbook

from app.models.service_request import ServiceRequestCategory, ServiceRequestStatus
from app.services.statistics_service import compute_statistics, export_statistics_excel
from tests.fakes import NOW, hours_ago, make_request


class TestComputeStatistics:

    def test_empty_collection(self):
        stats = compute_statistics([], now=NOW)

        assert stats.total_requests == 0
        assert stats.by_status == {}
        assert stats.by_category == {}
        assert stats.requests_over_time == []
        assert stats.average_resolution_hours == 0
        assert stats.top_neighborhoods == []

    def test_groups_contain_observed_values_only(self):
        requests = [
            make_request(category=ServiceRequestCategory.POTHOLE),
            make_request(category=ServiceRequestCategory.POTHOLE, status=ServiceRequestStatus.CLOSED),
            make_request(category=ServiceRequestCategory.GRAFFITI),
        ]
        stats = compute_statistics(requests, now=NOW)

        assert stats.total_requests == 3
        assert stats.by_status == {"Open": 2, "Closed": 1}
        assert stats.by_category == {"Pothole": 2, "Graffiti": 1}
        assert sum(stats.by_status.values()) == stats.total_requests

    def test_one_request_per_status(self):
        """상태별 1건씩, Downtown 2건 → by_status 각 1, Downtown 1위."""
        requests = [
            make_request(status=ServiceRequestStatus.OPEN, address="1 King St, Downtown, Calgary"),
            make_request(status=ServiceRequestStatus.IN_PROGRESS, address="9 Elm Ave, Downtown, Calgary"),
            make_request(status=ServiceRequestStatus.CLOSED, address="4 Oak Rd, Riverside, Calgary"),
        ]
        stats = compute_statistics(requests, now=NOW)

        assert stats.by_status == {"Open": 1, "InProgress": 1, "Closed": 1}
        assert [(n.neighborhood, n.count) for n in stats.top_neighborhoods] == [
            ("Downtown", 2),
            ("Riverside", 1),
        ]

    def test_average_resolution_of_closed_requests(self):
        """종료 요청만 — (2h + 5h) / 2 = 3.5h."""
        requests = [
            make_request(status=ServiceRequestStatus.CLOSED, created_at=hours_ago(10), updated_at=hours_ago(8)),
            make_request(status=ServiceRequestStatus.CLOSED, created_at=hours_ago(6), updated_at=hours_ago(1)),
            make_request(status=ServiceRequestStatus.IN_PROGRESS, created_at=hours_ago(100), updated_at=hours_ago(1)),
        ]
        assert compute_statistics(requests, now=NOW).average_resolution_hours == 3.5

    def test_average_rounded_to_one_decimal(self):
        requests = [
            make_request(
                status=ServiceRequestStatus.CLOSED,
                created_at=hours_ago(1),
                updated_at=hours_ago(1) + timedelta(minutes=20),
            ),
        ]
        assert compute_statistics(requests, now=NOW).average_resolution_hours == 0.3

    def test_no_closed_requests_gives_zero(self):
        requests = [make_request(status=ServiceRequestStatus.OPEN)]
        assert compute_statistics(requests, now=NOW).average_resolution_hours == 0

    def test_requests_over_time_trailing_window(self):
        requests = [
            make_request(created_at=NOW - timedelta(days=40)),
            make_request(created_at=NOW - timedelta(days=2)),
            make_request(created_at=NOW - timedelta(days=2, hours=1)),
            make_request(created_at=NOW - timedelta(hours=1)),
        ]
        stats = compute_statistics(requests, now=NOW)

        assert [(d.date, d.count) for d in stats.requests_over_time] == [
            ("2026-10-17", 2),
            ("2026-10-19", 1),
        ]
        assert stats.total_requests == 4

    def test_top_neighborhoods(self):
        requests = (
            [make_request(address="1 A St, Downtown, Calgary")] * 3
            + [make_request(address="2 B St, Beltline, Calgary")] * 2
            + [make_request(address="3 C St, Mission, Calgary")]
        )
        stats = compute_statistics(requests, now=NOW)

        assert stats.top_neighborhoods[0].neighborhood == "Downtown"
        assert stats.top_neighborhoods[0].count == 3
        assert [(n.neighborhood, n.count) for n in stats.top_neighborhoods] == [
            ("Downtown", 3), ("Beltline", 2), ("Mission", 1),
        ]

    def test_top_neighborhoods_limited_to_five(self):
        names = ["A", "B", "C", "D", "E", "F", "G"]
        requests = [make_request(address=f"1 Main St, {name}") for name in names]
        stats = compute_statistics(requests, now=NOW)
        assert len(stats.top_neighborhoods) == 5

    def test_ties_keep_first_seen_order(self):
        requests = [
            make_request(address="1 St, Ramsay"),
            make_request(address="1 St, Inglewood"),
            make_request(address="1 St, Bridgeland"),
        ]
        stats = compute_statistics(requests, now=NOW)
        assert [n.neighborhood for n in stats.top_neighborhoods] == ["Ramsay", "Inglewood", "Bridgeland"]

    def test_missing_neighborhood_falls_back_to_address(self):
        requests = [
            make_request(address="9 Elm Ave, Sunnyside, Calgary", neighborhood=None),
            make_request(address=" ", neighborhood=None),
        ]
        stats = compute_statistics(requests, now=NOW)
        assert {n.neighborhood for n in stats.top_neighborhoods} == {"Sunnyside", "Unknown"}


class TestStatisticsService:

    async def test_get_statistics_reads_whole_store(self, service, store, db):
        store.put(*[make_request() for _ in range(30)])
        stats = await service.get_statistics(db)
        assert stats.total_requests == 30


class TestExportStatisticsExcel:

    def test_workbook_sheets_and_values(self):
        requests = [
            make_request(category=ServiceRequestCategory.WATER_LEAK),
            make_request(category=ServiceRequestCategory.WATER_LEAK, status=ServiceRequestStatus.CLOSED,
                         created_at=hours_ago(4), updated_at=hours_ago(2)),
        ]
        content = export_statistics_excel(compute_statistics(requests, now=NOW))

        wb = load_workbook(BytesIO(content))
        assert wb.sheetnames == ["Summary", "By Status", "By Category", "Over Time", "Top Neighborhoods"]

        summary = wb["Summary"]
        assert summary["A1"].value == "Metric"
        assert summary["B2"].value == 2
        assert summary["B3"].value == 2.0

        by_category = wb["By Category"]
        assert by_category["A2"].value == "WaterLeak"
        assert by_category["B2"].value == 2

        neighborhoods = wb["Top Neighborhoods"]
        assert neighborhoods["A2"].value == "Downtown"
