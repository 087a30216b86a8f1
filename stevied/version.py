"""Editor version identification."""

VERSION = "STEVIE - Version 3.7A"


def version_string() -> str:
    """The editor's version banner."""
    return VERSION