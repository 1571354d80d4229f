"""
Spreadsheet export of the schedule grid.

Builds a pandas DataFrame from the aggregated grid (one row per process, one
column per date, a Total column and a Daily Totals row) and writes it to xlsx
or csv in memory.
"""
import io
from typing import Tuple

import pandas as pd

from lineplan.datetime_utils import format_iso_date
from lineplan.exceptions import ParseError
from lineplan.planning.scheduling.aggregator import ScheduleGrid

EXPORT_FORMATS = {
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'csv': 'text/csv',
}


def grid_to_dataframe(grid: ScheduleGrid) -> pd.DataFrame:
    """
    Flatten a schedule grid into a DataFrame.

    Columns: Process, Offset, one column per date (YYYY-MM-DD), Total.
    """
    date_columns = [format_iso_date(d) for d in grid.dates]
    records = []
    for row in grid.rows:
        record = {
            'Process': row.process.name,
            'Offset': row.process.offset_working_days,
        }
        for day, column in zip(grid.dates, date_columns):
            record[column] = row.quantity_on(day)
        record['Total'] = row.total
        records.append(record)

    totals = {'Process': 'Daily Totals', 'Offset': ''}
    for day, column in zip(grid.dates, date_columns):
        totals[column] = grid.daily_totals.get(day, 0)
    totals['Total'] = grid.grand_total
    records.append(totals)

    return pd.DataFrame(records, columns=['Process', 'Offset'] + date_columns + ['Total'])


def export_grid(grid: ScheduleGrid, fmt: str = 'xlsx') -> Tuple[io.BytesIO, str]:
    """
    Write the grid to an in-memory file.

    Args:
        grid: Aggregated schedule grid
        fmt: 'xlsx' or 'csv'

    Returns:
        (buffer positioned at 0, mimetype)

    Raises:
        ParseError: If the format is not supported
    """
    fmt = (fmt or 'xlsx').lower()
    if fmt not in EXPORT_FORMATS:
        raise ParseError(f"format must be one of: {', '.join(EXPORT_FORMATS)}", format=fmt)

    df = grid_to_dataframe(grid)
    buffer = io.BytesIO()
    if fmt == 'xlsx':
        sheet_name = f"Schedule ({grid.level.value})"
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            df.to_excel(writer, index=False, sheet_name=sheet_name)
    else:
        buffer.write(df.to_csv(index=False).encode('utf-8'))

    buffer.seek(0)
    return buffer, EXPORT_FORMATS[fmt]
