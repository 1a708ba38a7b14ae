"""Response and table shapes for report results."""

from __future__ import annotations

from freight_reporting.models.reporting import ReportResult

TABLE_COLUMNS: dict[str, tuple[str, ...]] = {
    "kpis": ("bookings", "delivered", "deliveryRatePct", "revenue", "expenses", "netProfit", "marginPct"),
    "series": ("period", "revenue", "expenses", "netProfit"),
    "byCategory": ("category", "amount", "pct"),
    "topClients": ("clientId", "client", "bookings", "revenue", "marginPct"),
    "negativeBookings": ("bookingId", "client", "revenue", "expense", "net", "company"),
    "unlinkedExpenses": ("entryId", "date", "category", "amount", "company"),
    "unbilledDelivered": ("bookingId", "client", "deliveredDate", "company"),
}

# Export table keys as used in URLs and filenames.
TABLE_KEYS: dict[str, str] = {
    "kpis": "kpis",
    "series": "series",
    "by-category": "byCategory",
    "top-clients": "topClients",
    "negative-bookings": "negativeBookings",
    "unlinked-expenses": "unlinkedExpenses",
    "unbilled-delivered": "unbilledDelivered",
}


def serialize_report(result: ReportResult) -> dict[str, object]:
    kpis = result.kpis
    return {
        "filter": result.report_filter.as_dict(),
        "currency": result.currency,
        "kpis": {
            "bookings": kpis.bookings,
            "delivered": kpis.delivered,
            "deliveryRatePct": str(kpis.delivery_rate_pct),
            "revenue": str(kpis.revenue),
            "expenses": str(kpis.expenses),
            "netProfit": str(kpis.net_profit),
            "marginPct": str(kpis.margin_pct),
        },
        "series": [
            {
                "period": row.period.isoformat(),
                "revenue": str(row.revenue),
                "expenses": str(row.expenses),
                "netProfit": str(row.net_profit),
            }
            for row in result.series
        ],
        "byCategory": [
            {"category": row.category, "amount": str(row.amount), "pct": str(row.pct)}
            for row in result.by_category
        ],
        "topClients": [
            {
                "clientId": row.client_id,
                "client": row.client,
                "bookings": row.bookings,
                "revenue": str(row.revenue),
                "marginPct": str(row.margin_pct),
            }
            for row in result.top_clients
        ],
        "negativeBookings": [
            {
                "bookingId": row.booking_id,
                "client": row.client,
                "revenue": str(row.revenue),
                "expense": str(row.expense),
                "net": str(row.net),
                "company": row.company,
            }
            for row in result.negative_bookings
        ],
        "unlinkedExpenses": [
            {
                "entryId": row.entry_id,
                "date": row.date.isoformat(),
                "category": row.category,
                "amount": str(row.amount),
                "company": row.company,
            }
            for row in result.unlinked_expenses
        ],
        "unbilledDelivered": [
            {
                "bookingId": row.booking_id,
                "client": row.client,
                "deliveredDate": row.delivered_date.isoformat(),
                "company": row.company,
            }
            for row in result.unbilled_delivered
        ],
    }


def report_tables(result: ReportResult) -> dict[str, list[dict[str, str]]]:
    """Every section of a report as rows of strings, in ``TABLE_COLUMNS`` order."""

    payload = serialize_report(result)
    tables: dict[str, list[dict[str, str]]] = {}
    for section, columns in TABLE_COLUMNS.items():
        rows = payload[section]
        if isinstance(rows, dict):
            rows = [rows]
        tables[section] = [{column: str(row[column]) for column in columns} for row in rows]
    return tables
