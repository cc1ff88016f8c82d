from appforge.storage.store import (
    AppStore,
    ColumnAlreadyExistsError,
    SqlAppStore,
    TableNotRegisteredError,
    full_table_name,
)

__all__ = [
    "AppStore",
    "ColumnAlreadyExistsError",
    "SqlAppStore",
    "TableNotRegisteredError",
    "full_table_name",
]
