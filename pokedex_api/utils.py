from typing import Optional, Tuple


def parse_limit_offset(
    limit_str: Optional[str],
    offset_str: Optional[str],
    default_limit: int,
    max_limit: int,
) -> Tuple[int, int]:
    """
    Parse raw `limit` / `offset` query strings.

    - limit: defaults to `default_limit`, must be 1..max_limit
    - offset: defaults to 0, must be >= 0

    Raises ValueError on anything else (non-integers included).
    """
    if limit_str is None or limit_str.strip() == "":
        limit = default_limit
    else:
        limit = int(limit_str)

    if offset_str is None or offset_str.strip() == "":
        offset = 0
    else:
        offset = int(offset_str)

    if not 1 <= limit <= max_limit:
        raise ValueError(f"limit must be between 1 and {max_limit}")
    if offset < 0:
        raise ValueError("offset must be >= 0")

    return limit, offset
