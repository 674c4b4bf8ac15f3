import os, csv, asyncio, logging
from datetime import datetime, timezone
from typing import Any, List

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from colorfest_analytics.core.config import settings
from colorfest_analytics.core.formatting import format_date_it
from colorfest_analytics.core.models import EditionReport

log = logging.getLogger(__name__)
SCOPES = ["https://www.googleapis.com/auth/spreadsheets", "https://www.googleapis.com/auth/drive.file"]


def _client():
    creds_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    if not creds_path or not os.path.exists(creds_path):
        raise RuntimeError("GOOGLE_APPLICATION_CREDENTIALS non trovato (file JSON del Service Account mancante)")
    creds = Credentials.from_service_account_file(creds_path, scopes=SCOPES)
    return gspread.authorize(creds)


def _open_spreadsheet(gc):
    if settings.gsheet_id:
        return gc.open_by_key(settings.gsheet_id)
    try:
        return gc.open(settings.gsheet_doc_title)
    except gspread.SpreadsheetNotFound:
        return gc.create(settings.gsheet_doc_title)


def _get_or_create_worksheet(sh, title: str):
    try:
        return sh.worksheet(title)
    except gspread.WorksheetNotFound:
        return sh.add_worksheet(title=title, rows=1000, cols=26)


def report_matrix(report: EditionReport) -> List[List[Any]]:
    """The report as sheet rows: summary, then days, then events."""
    rows: List[List[Any]] = [
        ["edizione", report.label, report.key],
        ["biglietti_totali", report.total_tickets],
        ["presenze_totali", report.total_presenze],
    ]
    if report.goal:
        rows.append(["obiettivo", report.goal.goal, report.goal.pct, report.goal.remaining])
    if report.today_total:
        rows.append(["venduti_oggi", report.today_total.sold_today,
                     report.today_total.sold_yesterday, report.today_total.pct_change])

    today = {d.date: d.sold_today for d in report.today_per_day}
    rows.append([])
    rows.append(["giorno", "data", "presenze", "capienza_pct", "venduti_oggi"])
    for d in report.distribution:
        rows.append([d.day, format_date_it(d.date), d.count,
                     "" if d.capacity_pct is None else d.capacity_pct,
                     today.get(d.date, "")])

    rows.append([])
    rows.append(["evento", "venduti", "giorni"])
    for r in report.ticket_rows:
        rows.append([r.event_name, r.sold, ", ".join(r.days)])
    return rows


@retry(
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    wait=wait_exponential(min=1, max=10),
    stop=stop_after_attempt(3),
    reraise=True,
)
def _write_matrix(matrix: List[List[Any]]) -> str:
    sh = _open_spreadsheet(_client())
    ws = _get_or_create_worksheet(sh, settings.gsheet_worksheet or "edizione")

    # Clear + rewrite
    ws.clear()
    if matrix:
        ws.update(values=matrix, range_name="A1", value_input_option="USER_ENTERED")
    log.info("gsheets: report written", extra={"rows": len(matrix), "sheet": sh.id})
    return sh.id


async def export_report_gsheet(report: EditionReport) -> str:
    return await asyncio.to_thread(_write_matrix, report_matrix(report))


def export_report_csv(report: EditionReport, out_dir: str) -> str:
    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, f"{report.key}_{datetime.now(timezone.utc).date()}.csv")
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerows(report_matrix(report))
    return path


__all__ = ["export_report_gsheet", "export_report_csv", "report_matrix"]
