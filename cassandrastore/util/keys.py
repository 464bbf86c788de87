"""
Storage key helpers.
"""

import hashlib


# Keys longer than this are replaced by their SHA-1 digest.
MAX_KEY_LENGTH = 50


def normalize_key(key: str) -> str:
    """
    Convert long keys to something that fits in the key column.

    Short keys are stored as-is so they stay readable when inspecting
    the table; longer keys become a 40 character SHA-1 hex digest.
    """
    if len(key) > MAX_KEY_LENGTH:
        return hashlib.sha1(key.encode('utf-8')).hexdigest()
    return key
