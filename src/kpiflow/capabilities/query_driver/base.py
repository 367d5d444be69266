"""Backend driver interface used by the query executor."""

from __future__ import annotations

from abc import ABC, abstractmethod

import pandas as pd


class QueryDriver(ABC):
    """Executes query text against the target backend."""

    @abstractmethod
    async def run(self, query: str) -> pd.DataFrame:
        """Execute ``query`` and return its rows.

        Raises:
            Exception: Any driver error; the executor wraps it in ExecutionError.
        """
        pass
