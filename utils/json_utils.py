#!/usr/bin/env python3
"""
Centralized JSON serialization utilities.

Converts values returned by database drivers (datetimes, dates, UUIDs,
Decimals, bytes) into JSON-compatible forms for command line output.
"""

import json
import uuid
from decimal import Decimal
from datetime import date, datetime, timedelta


class UniversalJSONEncoder(json.JSONEncoder):
    """
    JSON encoder for database values.

    Usage:
        json.dumps(data, cls=UniversalJSONEncoder)
    """

    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, timedelta):
            return obj.total_seconds()
        if isinstance(obj, uuid.UUID):
            return str(obj)
        if isinstance(obj, bytes):
            return obj.decode('utf-8', errors='replace')
        if isinstance(obj, (set, frozenset, tuple)):
            return list(obj)
        if hasattr(obj, 'to_dict') and callable(obj.to_dict):
            return obj.to_dict()
        # Last resort for driver-specific objects
        return str(obj)


def safe_json_dumps(obj, **kwargs):
    """
    Serializes any object to a JSON string with UniversalJSONEncoder.

    Example:
        json_str = safe_json_dumps(statistics, indent=2)
    """
    if 'cls' not in kwargs:
        kwargs['cls'] = UniversalJSONEncoder

    return json.dumps(obj, **kwargs)
