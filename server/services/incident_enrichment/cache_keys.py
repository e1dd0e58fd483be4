"""
Cache key construction for incident enrichment.

Keys are flat strings of the form ``<prefix>:<category>:<value>``.  The
field name itself never appears in a key, so two fields sharing a category
and a value resolve to the same incident membership.
"""

from typing import Any, Optional

from services.incident_enrichment.field_catalog import FieldCatalog

KEY_SEPARATOR = ":"
DEFAULT_KEY_ROOT = "rbincident"

_RELATION_SEGMENT = "relation"
_INCIDENT_SEGMENT = "incident"


def stringify_value(value: Any) -> str:
    """Render a field value in canonical form for key construction.

    ``80``, ``80.0`` and ``"80"`` all render as ``"80"``.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return str(value).strip()


class CacheKeyBuilder:
    """Deterministic key builder bound to a field catalog."""

    def __init__(
        self,
        catalog: FieldCatalog,
        key_root: str = DEFAULT_KEY_ROOT,
        separator: str = KEY_SEPARATOR,
    ):
        self.catalog = catalog
        self.key_root = key_root
        self.separator = separator

    def key_prefix(self, namespace_uuid: Optional[Any] = None) -> str:
        """Tenant prefix: the root alone, or root plus namespace."""
        if namespace_uuid is None or stringify_value(namespace_uuid) == "":
            return self.key_root
        return self._join(self.key_root, stringify_value(namespace_uuid))

    def build_key(self, prefix: str, field_name: str, value: Any) -> str:
        return self._join(
            prefix, self.catalog.category_of(field_name), stringify_value(value)
        )

    def build_relation_key(self, prefix: str, incident_uuid: str) -> str:
        return self._join(prefix, _RELATION_SEGMENT, incident_uuid)

    def build_incident_key(self, prefix: str, incident_uuid: str) -> str:
        return self._join(prefix, _INCIDENT_SEGMENT, incident_uuid)

    def _join(self, *parts: str) -> str:
        return self.separator.join(parts)
