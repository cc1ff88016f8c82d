"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from appforge.db.models.application import ApplicationRow
from appforge.db.models.app_schema import AppSchemaRow
from appforge.db.models.edit_request import EditRequestRow

__all__ = [
    "ApplicationRow",
    "AppSchemaRow",
    "EditRequestRow",
]
