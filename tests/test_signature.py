"""
tests/test_signature.py — Card Configuration Fingerprint
=========================================================

Canonical JSON form, escaping, determinism, and field sensitivity of
:mod:`studio.services.signature`.
"""

from __future__ import annotations

import hashlib

from studio.database.models import StudioCard
from studio.services.signature import (
    canonical_payload,
    compute_signature,
    encode_string,
    signature_for_card,
    signatures_match,
)

BASE = dict(
    integration_id=42,
    query="dags/health?window=24h",
    card_type="kpi",
    layout_type="kpi",
    fields_json='[{"key":"a"}]',
    style_json='{"accent":"#0ea5e9"}',
    layout_json='{"density":"compact"}',
    refresh_policy_json='{"mode":"Interval"}',
    data_source_json='{"seedKey":"x"}',
)


class TestCanonicalPayload:
    def test_fixed_key_order_and_compact(self):
        payload = canonical_payload(7, "q", "kpi", "grid", None, None, None, None, None)
        assert payload == (
            '{"integrationId":7,"query":"q","cardType":"kpi","layoutType":"grid",'
            '"fieldsJson":"","styleJson":"","layoutJson":"","refreshPolicyJson":"",'
            '"dataSourceJson":""}'
        )

    def test_missing_integration_is_null(self):
        payload = canonical_payload(None, None, None, None, None, None, None, None, None)
        assert payload.startswith('{"integrationId":null,"query":""')

    def test_hash_is_uppercase_sha256_of_payload(self):
        payload = canonical_payload(*BASE.values())
        expected = hashlib.sha256(payload.encode("utf-8")).hexdigest().upper()
        assert compute_signature(**BASE) == expected
        assert len(expected) == 64


class TestEscaping:
    def test_quotes_and_html_characters_use_unicode_escapes(self):
        assert encode_string('a"b') == '"a\\u0022b"'
        assert encode_string("<>&'+`") == '"\\u003C\\u003E\\u0026\\u0027\\u002B\\u0060"'

    def test_short_escapes(self):
        assert encode_string("\n\t\r\b\f\\") == '"\\n\\t\\r\\b\\f\\\\"'

    def test_other_control_characters(self):
        assert encode_string("\x01\x1f\x7f") == '"\\u0001\\u001F\\u007F"'

    def test_non_ascii_is_uppercase_hex(self):
        assert encode_string("é") == '"\\u00E9"'
        assert encode_string("日") == '"\\u65E5"'

    def test_astral_characters_become_surrogate_pairs(self):
        assert encode_string("😀") == '"\\uD83D\\uDE00"'

    def test_plain_ascii_untouched(self):
        assert encode_string("SELECT 1 FROM t WHERE a = b;") == '"SELECT 1 FROM t WHERE a = b;"'

    def test_json_blob_quotes_are_escaped(self):
        payload = canonical_payload(1, "q", "", "", '{"k":1}', None, None, None, None)
        assert '"fieldsJson":"{\\u0022k\\u0022:1}"' in payload


class TestDeterminism:
    def test_same_input_same_signature(self):
        assert compute_signature(**BASE) == compute_signature(**BASE)

    def test_every_field_changes_the_signature(self):
        original = compute_signature(**BASE)
        for name, value in BASE.items():
            changed = dict(BASE)
            changed[name] = value + 1 if isinstance(value, int) else value + "!"
            assert compute_signature(**changed) != original, name

    def test_swapping_values_between_fields_changes_signature(self):
        swapped = dict(BASE, style_json=BASE["layout_json"], layout_json=BASE["style_json"])
        assert compute_signature(**swapped) != compute_signature(**BASE)

    def test_none_and_empty_string_are_equivalent(self):
        with_none = dict(BASE, fields_json=None)
        with_empty = dict(BASE, fields_json="")
        assert compute_signature(**with_none) == compute_signature(**with_empty)

    def test_signature_for_card_matches_columns(self):
        card = StudioCard(**BASE)
        assert signature_for_card(card) == compute_signature(**BASE)


class TestSignaturesMatch:
    def test_case_insensitive(self):
        sig = compute_signature(**BASE)
        assert signatures_match(sig, sig.lower())

    def test_blank_never_matches(self):
        assert not signatures_match(None, None)
        assert not signatures_match("", "")
        assert not signatures_match("ABC", None)
