"""KPI + insight workflows against a local SQLite database via OpenRouter.

Creates a small ``orders`` table, starts the KPI workflow, prints the
suspend payload, confirms it, then runs the insight workflow on the saved KPI.

Run:
  python examples/kpi_sqlite_quickstart.py

Required env:
  - OPENROUTER_API_KEY

Recommended env:
  - OPENROUTER_MODEL (e.g. "openai/gpt-4o-mini", "anthropic/claude-3.5-sonnet")
  - KPIFLOW_RUN_STORE_DIR (persist suspended runs as JSON files)
"""

import asyncio
import json
import logging
import os
import sqlite3
import sys
import tempfile


def create_database(path: str) -> None:
    conn = sqlite3.connect(path)
    try:
        conn.execute(
            "CREATE TABLE orders (id INTEGER PRIMARY KEY, customer TEXT, "
            "status TEXT, amount REAL, created_at TEXT)"
        )
        conn.executemany(
            "INSERT INTO orders (customer, status, amount, created_at) VALUES (?, ?, ?, ?)",
            [
                ("alice", "paid", 120.0, "2024-01-03"),
                ("bob", "paid", 80.5, "2024-01-05"),
                ("carol", "refunded", 42.0, "2024-01-09"),
                ("dave", "paid", 310.0, "2024-02-01"),
                ("erin", "pending", 15.25, "2024-02-11"),
                ("alice", "paid", 60.0, "2024-03-02"),
            ],
        )
        conn.commit()
    finally:
        conn.close()


async def main() -> None:
    if not os.getenv("OPENROUTER_API_KEY"):
        print("[error] OPENROUTER_API_KEY is not set.")
        sys.exit(1)

    from kpiflow.config import KpiFlowSettings
    from kpiflow.definitions import SqliteDefinitionStore
    from kpiflow.integrations.openrouter import OpenRouterGenerationService
    from kpiflow.integrations.sqlite import SqliteQueryDriver, SqliteSchemaIntrospector
    from kpiflow.services import build_workflow_service
    from kpiflow.workflows import INSIGHT_WORKFLOW_ID, KPI_WORKFLOW_ID

    workdir = tempfile.mkdtemp(prefix="kpiflow-")
    db_path = os.path.join(workdir, "shop.sqlite")
    create_database(db_path)

    service = build_workflow_service(
        introspector=SqliteSchemaIntrospector(db_path),
        driver=SqliteQueryDriver(db_path),
        generation_service=OpenRouterGenerationService(),
        definition_store=SqliteDefinitionStore(os.path.join(workdir, "definitions.sqlite")),
        settings=KpiFlowSettings.from_env(backend="sqlite"),
    )

    handle = await service.start_run(
        KPI_WORKFLOW_ID, {"prompt": "orders: average paid order value", "kpi_name": "aov"}
    )
    print(f"KPI run {handle.run_id}: {handle.status.value}")
    print(json.dumps(handle.suspend_payload, indent=2, default=str))

    done = await service.resume_run(handle.run_id, {"confirmed": True})
    print(done.output["message"])
    if not done.output["saved"]:
        return

    insight = await service.start_run(INSIGHT_WORKFLOW_ID, {"prompt": "aov: is it trending up?"})
    print(insight.suspend_payload["insight_details"]["generated_insight"])
    saved = await service.resume_run(insight.run_id, {"confirmed": True, "schedule": "weekly"})
    print(saved.output["message"])


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
