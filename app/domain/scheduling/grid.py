"""
Calendar grid mapper.

Turns scheduled date ranges into per-day blocks on a month grid. Everything
here is a pure function of (spans, visible days); nothing touches the
database, so the bench, the month view and the tests share one code path.
"""

import calendar
import logging
from datetime import date, datetime, timedelta
from typing import Optional, Union

from pydantic import BaseModel

from ...config import INSTALLER_ORDER
from ...models import Job

logger = logging.getLogger(__name__)

DateInput = Union[date, datetime, str]


class ScheduledSpan(BaseModel):
    """The parts of a scheduled job the grid needs"""

    jobId: int
    title: str
    color: str = "#1976D2"
    installer: Optional[str] = None
    start: DateInput
    end: Optional[DateInput] = None


class GridBlock(BaseModel):
    """One job on one visible day"""

    jobId: int
    title: str
    color: str
    installer: Optional[str] = None
    date: date
    dayIndex: int
    row: int
    column: int
    stackIndex: int = 0
    isFirst: bool
    isLast: bool
    continuesBefore: bool = False
    continuesAfter: bool = False


class DayCell(BaseModel):
    date: date
    inMonth: bool = True
    jobIds: list[int] = []


def parse_date_only(value: DateInput) -> date:
    """
    Calendar date of ``value`` read straight from its Y-M-D components.

    Strings are never run through a timezone conversion, so
    ``"2026-02-01T23:30:00-08:00"`` stays on Feb 1.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        year, month, day = (int(part) for part in text[:10].split("-"))
        return date(year, month, day)
    except ValueError:
        raise ValueError(f"Invalid date: {value!r}") from None


def month_grid_days(year: int, month: int, week_start: int = calendar.SUNDAY) -> list[date]:
    """Every day shown on a month view, padded to whole weeks"""
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])

    lead = (first.weekday() - week_start) % 7
    trail = (week_start + 6 - last.weekday()) % 7

    start = first - timedelta(days=lead)
    total = lead + last.day + trail
    return [start + timedelta(days=offset) for offset in range(total)]


def span_from_job(job: Job) -> ScheduledSpan:
    return ScheduledSpan(
        jobId=job.id,
        title=job.title,
        color=job.color or "#1976D2",
        installer=job.installer,
        start=job.schedule_start,
        end=job.schedule_end,
    )


def installer_rank(installer: Optional[str], installer_order: list[str] = INSTALLER_ORDER) -> int:
    """Position in the installer priority list; unknown or missing installers sort last"""
    if installer and installer in installer_order:
        return installer_order.index(installer)
    return len(installer_order)


def _stack_key(span: ScheduledSpan, installer_order: list[str]):
    return (installer_rank(span.installer, installer_order), parse_date_only(span.start), span.jobId)


def map_jobs_to_grid(
    spans: list[ScheduledSpan],
    visible_days: list[date],
    columns: int = 7,
    installer_order: Optional[list[str]] = None,
) -> list[GridBlock]:
    """
    Emit one block per visible day each span covers.

    Ranges starting before the grid are clamped to the first cell and ranges
    ending after it to the last cell. Ranges with end before start, or lying
    wholly outside the grid, are skipped. Blocks sharing a day are stacked by
    installer priority, then start date, then job id.
    """
    if not visible_days:
        return []
    order = INSTALLER_ORDER if installer_order is None else installer_order

    first_day, last_day = visible_days[0], visible_days[-1]
    last_index = len(visible_days) - 1

    blocks: list[tuple[tuple, GridBlock]] = []
    for span in spans:
        try:
            start = parse_date_only(span.start)
            end = parse_date_only(span.end) if span.end is not None else start
        except ValueError as e:
            logger.warning(f"⚠️ Skipping job {span.jobId} on grid: {e}")
            continue

        if end < start:
            logger.warning(f"⚠️ Skipping job {span.jobId} on grid: ends {end} before it starts {start}")
            continue
        if end < first_day or start > last_day:
            continue

        continues_before = start < first_day
        continues_after = end > last_day
        start_index = 0 if continues_before else (start - first_day).days
        end_index = last_index if continues_after else (end - first_day).days

        key = _stack_key(span, order)
        for index in range(start_index, end_index + 1):
            block = GridBlock(
                jobId=span.jobId,
                title=span.title,
                color=span.color,
                installer=span.installer,
                date=visible_days[index],
                dayIndex=index,
                row=index // columns,
                column=index % columns,
                isFirst=index == start_index and not continues_before,
                isLast=index == end_index and not continues_after,
                continuesBefore=index == start_index and continues_before,
                continuesAfter=index == end_index and continues_after,
            )
            blocks.append((key, block))

    blocks.sort(key=lambda item: (item[1].dayIndex, item[0]))

    stacked: list[GridBlock] = []
    current_day, depth = None, 0
    for _, block in blocks:
        if block.dayIndex != current_day:
            current_day, depth = block.dayIndex, 0
        block.stackIndex = depth
        depth += 1
        stacked.append(block)
    return stacked


def build_day_cells(
    spans: list[ScheduledSpan],
    visible_days: list[date],
    month: Optional[int] = None,
    installer_order: Optional[list[str]] = None,
) -> list[DayCell]:
    """One cell per visible day listing its job ids in stacking order"""
    cells = [
        DayCell(date=day, inMonth=month is None or day.month == month, jobIds=[])
        for day in visible_days
    ]
    for block in map_jobs_to_grid(spans, visible_days, installer_order=installer_order):
        cells[block.dayIndex].jobIds.append(block.jobId)
    return cells
