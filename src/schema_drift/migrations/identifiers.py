"""Identifier allow-list for generated migrations.

Table, column and index names come from live database metadata, so every
name is checked before it is written into a migration file.
"""

import re

# PostgreSQL truncates identifiers at NAMEDATALEN - 1
MAX_IDENTIFIER_LENGTH = 63

_SAFE_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")


def is_safe_identifier(name: str) -> bool:
    """Check *name* against the allow-list.

    Example:
        >>> is_safe_identifier("campaign_updates")
        True
        >>> is_safe_identifier("users; DROP TABLE users")
        False
    """
    return (
        isinstance(name, str)
        and len(name) <= MAX_IDENTIFIER_LENGTH
        and _SAFE_IDENTIFIER.match(name) is not None
    )


def validate_identifier(name: str, kind: str = "identifier") -> str:
    """Return *name* unchanged if it is safe.

    Raises:
        ValueError: If *name* is empty, too long, or contains characters
            outside ``[A-Za-z0-9_$]`` (or starts with a digit or ``$``)
    """
    if not is_safe_identifier(name):
        raise ValueError(
            f"Unsafe {kind} name {name!r}: must match [A-Za-z_][A-Za-z0-9_$]* "
            f"and be at most {MAX_IDENTIFIER_LENGTH} characters"
        )
    return name
