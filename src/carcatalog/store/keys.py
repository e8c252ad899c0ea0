"""Order-preserving mapping between numeric ids and string keys.

Storage media that only accept string identifiers (blob paths, document
store keys) use ``encode_key``; the rest of the system keeps integer ids.
Keys are fixed-width and zero-padded, so sorting keys as strings gives the
same order as sorting the ids as numbers, and the mapping is lossless.
"""

KEY_WIDTH = 12
_MAX_ID = 10**KEY_WIDTH - 1


def encode_key(record_id: int) -> str:
    """Return the string key for *record_id*.

    Raises:
        ValueError: If the id is negative or too large for the key width.
    """
    if isinstance(record_id, bool) or not isinstance(record_id, int):
        raise ValueError(f"record id must be an int, got {record_id!r}")
    if not 0 <= record_id <= _MAX_ID:
        raise ValueError(f"record id out of range: {record_id}")
    return f"{record_id:0{KEY_WIDTH}d}"


def decode_key(key: str) -> int:
    """Return the numeric id encoded in *key*.

    Raises:
        ValueError: If *key* was not produced by ``encode_key``.
    """
    if len(key) != KEY_WIDTH or not key.isascii() or not key.isdigit():
        raise ValueError(f"malformed record key: {key!r}")
    return int(key)
