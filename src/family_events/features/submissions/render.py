"""HTML rendering for the admin records view."""

from __future__ import annotations

from collections.abc import Sequence
from html import escape
from urllib.parse import urlencode

from .models import COLUMNS, EventRecord, to_row
from .query import RecordFilter

_MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def _month_options(selected: int | None) -> str:
    options = ['<option value="">All months</option>']
    for number, label in enumerate(_MONTHS, start=1):
        marker = " selected" if number == selected else ""
        options.append(f'<option value="{number}"{marker}>{label}</option>')
    return "".join(options)


def _table_body(records: Sequence[EventRecord]) -> str:
    if not records:
        return f'<tr><td colspan="{len(COLUMNS)}">No data</td></tr>'
    rows = []
    for record in records:
        cells = "".join(f"<td>{escape(value)}</td>" for value in to_row(record))
        rows.append(f"<tr>{cells}</tr>")
    return "".join(rows)


def render_admin_page(
    records: Sequence[EventRecord],
    *,
    record_filter: RecordFilter,
    password: str,
) -> str:
    """Return the admin page: filter form, sorted records table, CSV link."""

    header = "".join(f"<th>{escape(column.title)}</th>" for column in COLUMNS)
    year_value = "" if record_filter.year is None else str(record_filter.year)
    download_href = "/download-csv?" + urlencode({"password": password})

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Family Event Admin Data</title>
<style>
  body {{ font-family: sans-serif; margin: 1.5rem; }}
  table {{ border-collapse: collapse; }}
  th, td {{ border: 1px solid #999; padding: 0.25rem 0.5rem; text-align: left; }}
</style>
</head>
<body>
<h1>Family Event Admin Data (Sorted by Date)</h1>
<form method="get" action="/admin">
  <input type="hidden" name="password" value="{escape(password)}">
  <label>Month <select name="month">{_month_options(record_filter.month)}</select></label>
  <label>Year <input type="number" name="year" min="1" max="9999" value="{escape(year_value)}"></label>
  <button type="submit">Filter</button>
</form>
<p>{len(records)} record(s). <a href="{escape(download_href)}">Download CSV</a></p>
<table>
  <thead><tr>{header}</tr></thead>
  <tbody>{_table_body(records)}</tbody>
</table>
<p><a href="/family_form.html">Back to Form</a></p>
</body>
</html>
"""


__all__ = ["render_admin_page"]
