"""Map registry paths onto flat bucket keys and back.

A bucket has no directories. A directory listing is rebuilt from the
keys that share a prefix.
"""

from typing import Iterable, List

SEPARATOR = "/"


def object_key(path: str) -> str:
    """Return the bucket key for a registry path.

    Registry paths are stored verbatim, leading slash included.
    """
    return path


def list_children(keys: Iterable[str], prefix: str) -> List[str]:
    """Rebuild one level of hierarchy from a prefix scan.

    Each key has ``prefix`` and one leading separator stripped. A key with
    nothing left but a single segment is a file at this level. Otherwise
    its first segment is a directory. Both groups are deduplicated in
    first-seen order, and files come before directories.

    Args:
        keys: Keys returned by a prefix listing
        prefix: The prefix that was queried

    Returns:
        Child names (not full paths), files first
    """
    files: List[str] = []
    directories: List[str] = []

    for key in keys:
        if not key.startswith(prefix):
            continue

        remainder = key[len(prefix):]
        if remainder.startswith(SEPARATOR):
            remainder = remainder[1:]
        if not remainder:
            continue

        fields = remainder.split(SEPARATOR)
        if len(fields) > 1:
            if fields[0] not in directories:
                directories.append(fields[0])
        elif fields[0] not in files:
            files.append(fields[0])

    return files + directories
