"""Read-only reports built from engine output."""

from groupledger.reports.event import build_event_report
from groupledger.reports.personal import (
    category_breakdown,
    monthly_breakdown,
    summarize_transactions,
)
from groupledger.reports.share import (
    format_amount,
    format_report_text,
    format_share_message,
    format_total,
)

__all__ = [
    "build_event_report",
    "category_breakdown",
    "format_amount",
    "format_report_text",
    "format_share_message",
    "format_total",
    "monthly_breakdown",
    "summarize_transactions",
]
