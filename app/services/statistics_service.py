"""대시보드 통계 서비스 — 서비스 요청 집계 로직.

Dashboard statistics — Aggregation over the full service request collection.
Status/category counts, trailing 30-day daily counts, average resolution
time of closed requests, and top neighborhoods. Also renders the same
figures into an Excel workbook for the dashboard export.
"""

from collections import Counter
from datetime import datetime, timedelta, timezone
from io import BytesIO
from typing import Iterable

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill

from app.models.service_request import ServiceRequest, ServiceRequestStatus
from app.schemas.service_request import DailyCount, DashboardStats, NeighborhoodCount
from app.utils.address import extract_neighborhood

TRAILING_DAYS: int = 30
TOP_NEIGHBORHOODS: int = 5


def _as_utc(value: datetime) -> datetime:
    # 일부 드라이버는 naive datetime을 반환 — UTC로 간주
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def compute_statistics(
    requests: Iterable[ServiceRequest],
    now: datetime | None = None,
) -> DashboardStats:
    """전체 요청 목록으로 대시보드 통계를 계산합니다.

    Compute dashboard statistics from the full request collection.
    Status and category groups contain observed values only.

    Args:
        requests: 전체 서비스 요청 (All service requests, unpaginated)
        now: 기준 시각 (Reference time for the trailing window, default: current UTC time)

    Returns:
        DashboardStats: 통계 응답 (Dashboard statistics payload)
    """
    items: list[ServiceRequest] = list(requests)
    now = _as_utc(now) if now is not None else datetime.now(timezone.utc)

    by_status: Counter[str] = Counter(r.status.value for r in items)
    by_category: Counter[str] = Counter(r.category.value for r in items)

    # 최근 30일 일별 건수 — UTC 날짜 기준 (Daily counts keyed by UTC calendar date)
    window_start = now - timedelta(days=TRAILING_DAYS)
    daily: Counter[str] = Counter(
        _as_utc(r.created_at).date().isoformat()
        for r in items
        if _as_utc(r.created_at) >= window_start
    )
    requests_over_time = [
        DailyCount(date=day, count=count) for day, count in sorted(daily.items())
    ]

    # 평균 처리 시간 — 종료된 요청만 (Closed requests only)
    closed_hours = [
        (_as_utc(r.updated_at) - _as_utc(r.created_at)).total_seconds() / 3600
        for r in items
        if r.status == ServiceRequestStatus.CLOSED
    ]
    avg_hours = sum(closed_hours) / len(closed_hours) if closed_hours else 0.0

    # 상위 동네 — 저장값이 없으면 주소에서 재추출, 동률은 먼저 나온 순서 유지
    # Counter preserves first-seen order and sorted() is stable, so ties keep encounter order
    neighborhoods: Counter[str] = Counter(
        r.neighborhood or extract_neighborhood(r.address) for r in items
    )
    ranked = sorted(neighborhoods.items(), key=lambda item: item[1], reverse=True)
    top = [
        NeighborhoodCount(neighborhood=name, count=count)
        for name, count in ranked[:TOP_NEIGHBORHOODS]
    ]

    return DashboardStats(
        total_requests=len(items),
        by_status=dict(by_status),
        by_category=dict(by_category),
        requests_over_time=requests_over_time,
        average_resolution_hours=round(avg_hours, 1),
        top_neighborhoods=top,
    )


def export_statistics_excel(stats: DashboardStats) -> bytes:
    """대시보드 통계를 Excel 파일로 내보내기."""
    wb = Workbook()
    header_font = Font(bold=True, color="FFFFFF", size=11)
    header_fill = PatternFill(start_color="550C18", end_color="550C18", fill_type="solid")

    def style_headers(ws, headers: list[str]) -> None:
        for col_idx, h in enumerate(headers, 1):
            cell = ws.cell(row=1, column=col_idx, value=h)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = Alignment(horizontal="center")
        for col_idx in range(1, len(headers) + 1):
            ws.column_dimensions[ws.cell(row=1, column=col_idx).column_letter].width = 22

    # --- Sheet 1: Summary ---
    ws1 = wb.active
    ws1.title = "Summary"
    style_headers(ws1, ["Metric", "Value"])
    ws1.append(["Total Requests", stats.total_requests])
    ws1.append(["Average Resolution Hours", stats.average_resolution_hours])

    # --- Sheet 2~5: 분류별 시트 ---
    sheets: list[tuple[str, list[str], list[list]]] = [
        ("By Status", ["Status", "Count"], [[k, v] for k, v in stats.by_status.items()]),
        ("By Category", ["Category", "Count"], [[k, v] for k, v in stats.by_category.items()]),
        ("Over Time", ["Date", "Count"], [[d.date, d.count] for d in stats.requests_over_time]),
        (
            "Top Neighborhoods",
            ["Neighborhood", "Count"],
            [[n.neighborhood, n.count] for n in stats.top_neighborhoods],
        ),
    ]
    for title, headers, rows in sheets:
        ws = wb.create_sheet(title)
        style_headers(ws, headers)
        for row in rows:
            ws.append(row)

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
