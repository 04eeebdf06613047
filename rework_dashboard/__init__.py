"""
Rework Dashboard — Quality-hold analytics backend

Turns quality-hold exports (CSV or Excel, with title blocks, goal sheets and
site-specific column names) into hold records and dashboard-ready KPIs.

To connect a front end:
    Create one session.DashboardSession at startup, pass each upload to
    ingest.ingest_file (or ingest_bytes) and render the returned message.
    Then call dashboard.get_manager_overview(session, start, end, locations)
    for the KPI cards and goal statuses, and the other dashboard.get_*
    functions for charts and the defect-driver table.

To persist between sessions:
    Pass any object with get/set/remove (see storage.KeyValueStore) to the
    session. storage.JsonFileStore keeps the batch on disk; a quota makes
    oversized batches stay in memory only.

To recognise a new export layout:
    Add keywords to config.HEADER_FAMILIES and rules to config.COLUMN_RULES.
    Rules are tried top to bottom, first match wins.
"""
