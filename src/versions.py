"""
Version string helpers.
"""

VERSION_PREFIX = "v"


def normalize(observed: str) -> str:
    """Strip a single leading version prefix from an observed version."""
    if observed.startswith(VERSION_PREFIX):
        return observed[len(VERSION_PREFIX) :]
    return observed


def matches(want: str, observed: str) -> bool:
    """
    Check whether an observed version satisfies the wanted one.

    We do prefix trimming and then matching because:
    want looks like:  0.19.3-815-g50e67d4
    got  looks like: v0.19.3-815-g50e67d4034e858-dirty
    """
    return normalize(observed).startswith(want)
