from typing import Any, Callable, Dict, Optional

from fund_ledger.config.settings import ConfigLoader
from fund_ledger.database.connection import DatabaseConfig, DatabaseManager
from fund_ledger.repositories.base import FundTransactionRepository
from fund_ledger.repositories.memory_fund_repository import InMemoryFundTransactionRepository
from fund_ledger.repositories.script_endpoint_repository import (
    DEFAULT_SHEET_TIMEZONE,
    ScriptEndpointFundTransactionRepository,
)
from fund_ledger.repositories.sqlite_fund_repository import SQLiteFundTransactionRepository


def _memory(config: Dict[str, Any]) -> FundTransactionRepository:
    return InMemoryFundTransactionRepository(seed=bool(config.get("seed_demo_data", True)))


def _sqlite(config: Dict[str, Any]) -> FundTransactionRepository:
    db_config = DatabaseConfig(config.get("db_path", "data/fund_ledger.db"))
    repository = SQLiteFundTransactionRepository(DatabaseManager(db_config))
    repository.ensure_schema()
    return repository


def _script(config: Dict[str, Any]) -> FundTransactionRepository:
    return ScriptEndpointFundTransactionRepository(
        url=config.get("script_url", ""),
        timeout=float(config.get("timeout", 30)),
        sheet_timezone=config.get("sheet_timezone", DEFAULT_SHEET_TIMEZONE),
    )


# Backend name -> builder. "memory" is demo mode.
BACKENDS: Dict[str, Callable[[Dict[str, Any]], FundTransactionRepository]] = {
    "memory": _memory,
    "sqlite": _sqlite,
    "script": _script,
}


def create_repository(config: Optional[Dict[str, Any]] = None) -> FundTransactionRepository:
    """
    Build the store selected by the `backend` setting.

    The choice is made once, here; the ledger service never branches on
    which backend it talks to.

    Args:
        config: Optional config dict. If None, loads from ConfigLoader.

    Raises:
        ValueError: If the backend name is unknown
    """
    if config is None:
        config = ConfigLoader.load_ledger_config()

    backend = config.get("backend", "sqlite")
    if backend not in BACKENDS:
        available = ', '.join(BACKENDS.keys())
        raise ValueError(
            f"Unknown ledger backend '{backend}'. "
            f"Available backends: {available}"
        )

    return BACKENDS[backend](config)
