# src/id_generator.py
"""
Typed Public ID Generator for CoinHub
Generates IDs in format: PREFIX-TIMESTAMP-RANDOM
Example: CON-1699564234-A7K9M2
"""

import secrets
import time


# Prefix mapping for all resource types
PREFIX_MAP = {
    "user": "USR",
    "session": "SES",
    "coin": "CON",
    "coin_image": "IMG",
    "like": "LIK",
    "comment": "CMT",
    "follow": "FLW",
    "trade": "TRD",
    "offer": "OFR",
    "message": "MSG",
    "shipping": "SHP",
    "report": "RPT",
    "rating": "RAT",
    "invite": "INV",
    "receipt": "RCP",
}


def generate_public_id(prefix: str) -> str:
    """
    Generate a typed public ID with format: PREFIX-TIMESTAMP-RANDOM

    Args:
        prefix: 3-letter type prefix (e.g., "USR", "CON") or resource type name (e.g., "user", "coin")

    Returns:
        str: Public ID in format PREFIX-TIMESTAMP-RANDOM
        Example: "USR-1699564234-A7K9M2"

    Security notes:
        - Timestamp provides chronological sortability
        - Random component prevents enumeration attacks
    """
    # If prefix is a resource type name, look it up in PREFIX_MAP
    if prefix in PREFIX_MAP:
        prefix = PREFIX_MAP[prefix]

    timestamp = int(time.time())

    # token_urlsafe may contain '-' and '_', so draw until six alphanumerics remain
    random_part = ""
    while len(random_part) < 6:
        random_part += secrets.token_urlsafe(8).replace('-', '').replace('_', '')
    random_part = random_part[:6].upper()

    return f"{prefix}-{timestamp}-{random_part}"


def id_factory(resource_type: str):
    """Column default factory: ``Column(String(50), default=id_factory("coin"))``."""
    prefix = PREFIX_MAP[resource_type]

    def _make() -> str:
        return generate_public_id(prefix)

    return _make


def parse_public_id(public_id: str) -> dict:
    """
    Parse a public ID into its components.

    Example:
        >>> parse_public_id("CON-1699564234-A7K9M2")
        {
            "prefix": "CON",
            "timestamp": 1699564234,
            "random": "A7K9M2",
            "resource_type": "coin"
        }
    """
    try:
        parts = public_id.split("-")
        if len(parts) != 3:
            raise ValueError(f"Invalid public ID format: {public_id}")

        prefix, timestamp_str, random_part = parts

        # Reverse lookup resource type from prefix
        resource_type = None
        for rtype, rpref in PREFIX_MAP.items():
            if rpref == prefix:
                resource_type = rtype
                break

        return {
            "prefix": prefix,
            "timestamp": int(timestamp_str),
            "random": random_part,
            "resource_type": resource_type,
        }
    except (ValueError, IndexError) as e:
        raise ValueError(f"Failed to parse public ID '{public_id}': {e}")


def validate_public_id(public_id: str, expected_prefix: str = None) -> bool:
    """
    Validate a public ID format and optionally check the prefix.

    Example:
        >>> validate_public_id("USR-1699564234-A7K9M2", "USR")
        True
        >>> validate_public_id("CON-1699564234-A7K9M2", "USR")
        False
    """
    try:
        parsed = parse_public_id(public_id)

        if expected_prefix and parsed["prefix"] != expected_prefix:
            return False

        if not parsed["prefix"].isupper():
            return False
        if not parsed["random"].isalnum():
            return False
        if len(parsed["random"]) != 6:
            return False

        return True
    except (ValueError, KeyError):
        return False


__all__ = [
    "PREFIX_MAP",
    "generate_public_id",
    "id_factory",
    "parse_public_id",
    "validate_public_id",
]
