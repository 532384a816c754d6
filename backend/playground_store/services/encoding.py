"""
Display-name encoding and the read-only list serializer.

ESCAPING:
  Names are stored with spaces replaced by the placeholder "%20". The "%"
  character itself is stored as "%25", so a name that already contains the
  text "%20" survives the trip unchanged. Reading percent-decodes the value.
  No other characters are touched.

READ-ONLY LIST:
  Stored as a JSON array of strings. NULL / "" decode to an empty list.
"""

from urllib.parse import unquote

from pydantic import TypeAdapter

SPACE_PLACEHOLDER = "%20"
PERCENT_PLACEHOLDER = "%25"


def escape(name: str) -> str:
    """Encode a display name for storage."""
    return name.replace("%", PERCENT_PLACEHOLDER).replace(" ", SPACE_PLACEHOLDER)


def unescape(stored: str) -> str:
    """Decode a stored display name. Exact inverse of escape()."""
    return unquote(stored)


class ReadOnlyListSerializer:
    """JSON codec for the projects.read_only_files column."""

    _adapter = TypeAdapter(list[str])

    def encode(self, names: list[str]) -> str:
        return self._adapter.dump_json(names).decode("utf-8")

    def decode(self, raw: str | None) -> list[str]:
        if not raw:
            return []
        return self._adapter.validate_json(raw)
