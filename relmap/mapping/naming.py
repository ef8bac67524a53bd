"""Identifier normalization shared by table and column names."""

import re

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_SEPARATORS = re.compile(r"[^0-9a-zA-Z]+")


def normalize(identifier: str) -> str:
    """Canonicalize an identifier into a storage name.

    ``OrderLine`` -> ``order_line``, ``HTTPServer`` -> ``http_server``,
    ``first-name`` -> ``first_name``.
    """
    name = _CAMEL_BOUNDARY.sub("_", identifier)
    name = _SEPARATORS.sub("_", name)
    return name.strip("_").lower()
