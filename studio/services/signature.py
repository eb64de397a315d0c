"""
studio.services.signature — Card Configuration Fingerprint
===========================================================

Hashes the *testable* configuration of a card (integration, query, types,
JSON blobs) so a test result can be tied to exactly what was tested.

Signatures are persisted (``studio_cards.last_test_signature``) and handed to
clients, so the canonical form is frozen:

* a compact JSON object, keys in the fixed order of :data:`SIGNATURE_FIELDS`
* ``integrationId`` as a JSON number (``null`` when unset), every other
  value a string with ``None`` coalesced to ``""``
* strings escaped the conservative way: ``"`` and the HTML-sensitive
  characters ``< > & ' + ` `` as ``\\u00XX``, all non-ASCII as upper-case
  ``\\uXXXX`` (surrogate pairs above the BMP)
* SHA-256 over the UTF-8 bytes, upper-case hex

Changing any of the above invalidates every stored signature.
"""

from __future__ import annotations

import hashlib

from studio.database.models import StudioCard

SIGNATURE_FIELDS: tuple[str, ...] = (
    "integrationId",
    "query",
    "cardType",
    "layoutType",
    "fieldsJson",
    "styleJson",
    "layoutJson",
    "refreshPolicyJson",
    "dataSourceJson",
)

_SHORT_ESCAPES = {
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\\": "\\\\",
}

_HTML_SENSITIVE = frozenset('"<>&\'+`')


# ---------------------------------------------------------------------------
# Canonical JSON
# ---------------------------------------------------------------------------
def _escape_char(ch: str) -> str:
    if ch in _SHORT_ESCAPES:
        return _SHORT_ESCAPES[ch]

    code = ord(ch)
    if ch in _HTML_SENSITIVE or code < 0x20 or code == 0x7F:
        return f"\\u{code:04X}"
    if code < 0x80:
        return ch
    if code <= 0xFFFF:
        return f"\\u{code:04X}"

    # Astral plane: UTF-16 surrogate pair
    code -= 0x10000
    high = 0xD800 + (code >> 10)
    low = 0xDC00 + (code & 0x3FF)
    return f"\\u{high:04X}\\u{low:04X}"


def encode_string(value: str) -> str:
    """Return *value* as a quoted, escaped JSON string literal."""
    return '"' + "".join(_escape_char(ch) for ch in value) + '"'


def canonical_payload(
    integration_id: int | None,
    query: str | None,
    card_type: str | None,
    layout_type: str | None,
    fields_json: str | None,
    style_json: str | None,
    layout_json: str | None,
    refresh_policy_json: str | None,
    data_source_json: str | None,
) -> str:
    """Build the compact JSON text that :func:`compute_signature` hashes."""
    values = (
        query, card_type, layout_type, fields_json, style_json,
        layout_json, refresh_policy_json, data_source_json,
    )
    parts = [
        '"integrationId":' + ("null" if integration_id is None else str(int(integration_id)))
    ]
    for name, value in zip(SIGNATURE_FIELDS[1:], values, strict=True):
        parts.append(f'"{name}":' + encode_string(value or ""))
    return "{" + ",".join(parts) + "}"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def compute_signature(
    integration_id: int | None,
    query: str | None,
    card_type: str | None,
    layout_type: str | None,
    fields_json: str | None,
    style_json: str | None,
    layout_json: str | None,
    refresh_policy_json: str | None,
    data_source_json: str | None,
) -> str:
    """Return the 64-character upper-case hex SHA-256 fingerprint."""
    payload = canonical_payload(
        integration_id, query, card_type, layout_type, fields_json,
        style_json, layout_json, refresh_policy_json, data_source_json,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest().upper()


def signature_for_card(card: StudioCard) -> str:
    return compute_signature(
        card.integration_id,
        card.query,
        card.card_type,
        card.layout_type,
        card.fields_json,
        card.style_json,
        card.layout_json,
        card.refresh_policy_json,
        card.data_source_json,
    )


def signatures_match(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    return a.casefold() == b.casefold()
