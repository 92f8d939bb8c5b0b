from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy.orm import class_mapper

AUDIT_EXCLUDED_COLUMNS = {'hashed_password'}


def sqlalchemy_to_dict(obj, exclude=AUDIT_EXCLUDED_COLUMNS):
    """Snapshot a mapped row as JSON-safe values for the audit log."""
    if obj is None:
        return None
    result = {}
    for column in class_mapper(obj.__class__).columns:
        if column.key in exclude:
            continue
        value = getattr(obj, column.key)
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        elif isinstance(value, Decimal):
            value = float(value)
        elif isinstance(value, Enum):
            value = value.value
        result[column.key] = value
    return result

__all__ = ['sqlalchemy_to_dict', 'AUDIT_EXCLUDED_COLUMNS']
