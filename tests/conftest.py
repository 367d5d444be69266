"""
Pytest configuration and shared fixtures for the kpiflow test suite.
"""

import os
import sqlite3

import pytest

from fakes import FakeGenerationService, answer

# Configure pytest-asyncio
pytest_plugins = ["pytest_asyncio"]


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "openrouter: marks tests requiring OpenRouter API key"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that touch a real database file"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically skip tests if required API keys are missing."""
    for item in items:
        if "openrouter" in item.keywords:
            if not os.getenv("OPENROUTER_API_KEY"):
                item.add_marker(
                    pytest.mark.skip(
                        reason="OPENROUTER_API_KEY environment variable not set"
                    )
                )


ORDERS = [
    (1, "alice", "paid", 120.0, 2, "2024-01-03"),
    (2, "bob", "paid", 80.5, 1, "2024-01-05"),
    (3, "carol", "refunded", 42.0, 1, "2024-01-09"),
    (4, "dave", "paid", 310.0, 5, "2024-02-01"),
    (5, "erin", "pending", 15.25, 1, "2024-02-11"),
    (6, "frank", "paid", 99.99, 3, "2024-02-20"),
    (7, "alice", "paid", 60.0, 1, "2024-03-02"),
    (8, "bob", "refunded", 20.0, 1, "2024-03-15"),
]


@pytest.fixture
def orders_db(tmp_path):
    """SQLite database with an ``orders`` table and a text-only ``notes`` table."""
    db_path = tmp_path / "shop.sqlite"
    conn = sqlite3.connect(db_path)
    try:
        conn.execute(
            """
            CREATE TABLE orders (
                id INTEGER PRIMARY KEY,
                customer TEXT NOT NULL,
                status TEXT NOT NULL,
                amount REAL NOT NULL,
                quantity INTEGER NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )
        conn.executemany("INSERT INTO orders VALUES (?, ?, ?, ?, ?, ?)", ORDERS)
        conn.execute("CREATE TABLE notes (label TEXT, body TEXT)")
        conn.execute("INSERT INTO notes VALUES ('a', 'first'), ('b', 'second')")
        conn.commit()
    finally:
        conn.close()
    return str(db_path)


@pytest.fixture
def fake_service():
    return FakeGenerationService(
        [answer("SELECT customer, AVG(amount) AS aov FROM orders GROUP BY customer;")]
    )
