"""
Spreadsheet export of crawled jobs.

One "Job Listings" sheet, built with pandas and styled with openpyxl:
priority columns first, then every other key found on the records in
alphabetical order. Failed enrichments show their "Error: ..." placeholders
as-is.
"""

import html
import io
from datetime import date
from typing import Optional

import pandas as pd
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from models.job import JobRecord

SHEET_NAME = "Job Listings"

PRIORITY_COLUMNS = [
    "title",
    "company",
    "location",
    "searchCountry",
    "currency",
    "postedDate",
    "description",
    "compensation",
    "recruiterName",
    "recruiterRole",
    "url",
    "companyUrl",
    "img",
    "referral",
    "detailedDescription",
]

HEADER_LABELS = {
    "searchCountry": "Country",
}

HEADER_FONT = Font(bold=True, size=11, color="FFFFFFFF")
HEADER_FILL = PatternFill(fill_type="solid", fgColor="FF4A90E2")
FREEZE_CELL = "C2"  # header row + first two columns

WIDE_COLUMNS = {"description": 60, "detailedDescription": 60, "url": 50, "companyUrl": 50, "img": 40}
DEFAULT_WIDTH = 20


def order_columns(keys: set[str]) -> list[str]:
    """Priority columns (those present) then the rest alphabetically."""
    leading = [key for key in PRIORITY_COLUMNS if key in keys]
    rest = sorted(keys - set(PRIORITY_COLUMNS))
    return leading + rest


def format_posted_date(value: str) -> str:
    """ISO date/time -> dd/mm/yyyy. Unparsable values pass through unchanged."""
    if not value:
        return ""
    parsed = pd.to_datetime(value, errors="coerce", utc=True)
    if pd.isna(parsed):
        return value
    return parsed.strftime("%d/%m/%Y")


def build_dataframe(records: list[JobRecord]) -> pd.DataFrame:
    rows = [record.to_dict() for record in records]
    keys: set[str] = set()
    for row in rows:
        keys.update(row)
    columns = order_columns(keys)

    df = pd.DataFrame(rows, columns=columns)
    if "postedDate" in df.columns:
        df["postedDate"] = df["postedDate"].fillna("").map(format_posted_date)
    if "earlyApplicant" in df.columns:
        df["earlyApplicant"] = df["earlyApplicant"].map(lambda flag: "Yes" if flag else "No")
    return df.fillna("")


def create_workbook(records: list[JobRecord]) -> bytes:
    """Render records to xlsx bytes."""
    df = build_dataframe(records)
    headers = [HEADER_LABELS.get(column, column) for column in df.columns]

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=SHEET_NAME, index=False, header=headers)
        sheet = writer.sheets[SHEET_NAME]

        for cell in sheet[1]:
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
        for index, column in enumerate(df.columns, start=1):
            sheet.column_dimensions[get_column_letter(index)].width = WIDE_COLUMNS.get(column, DEFAULT_WIDTH)

        sheet.freeze_panes = FREEZE_CELL
        if len(df.columns):
            sheet.auto_filter.ref = f"A1:{get_column_letter(len(df.columns))}{len(df) + 1}"

    return buffer.getvalue()


def build_export_filename(records: list[JobRecord], on: Optional[date] = None) -> str:
    """linkedin_jobs_<n>_<k>keywords_<c>countries_<YYYY-MM-DD>.xlsx"""
    on = on or date.today()
    keywords = {r.input_keyword for r in records}
    countries = {r.search_country for r in records}
    return (
        f"linkedin_jobs_{len(records)}_{len(keywords)}keywords_"
        f"{len(countries)}countries_{on.isoformat()}.xlsx"
    )


def build_export_caption(records: list[JobRecord], location_text: str) -> str:
    keywords = list(dict.fromkeys(r.input_keyword for r in records))
    countries = list(dict.fromkeys(r.search_country for r in records))
    lines = [
        "📊 LinkedIn Job Scrape Complete",
        "",
        f"Keywords: {html.escape(', '.join(keywords))}",
        f"Locations: {html.escape(location_text)}",
        "",
        f"✅ Found {len(records)} unique jobs across {len(countries)} countries:",
    ]
    for country in countries:
        count = sum(1 for r in records if r.search_country == country)
        lines.append(f"  • {html.escape(country)}: {count} jobs")
    return "\n".join(lines)
