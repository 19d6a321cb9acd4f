"""JSON decoding using orjson.

Usage:
    from queuesync.utils.json_utils import json_loads

    data = json_loads('[{"_id": "q1", "teamSize": 4, "players": []}]')
"""

from typing import Any

import orjson


def json_loads(data: str | bytes) -> Any:
    """Deserialize a JSON string or bytes.

    Raises:
        orjson.JSONDecodeError: (a ``ValueError``) on malformed input
    """
    return orjson.loads(data)
