"""
Tests for processing/column_mapper.py

Covers:
  - Every published feed label maps to its field name
  - Export-only labels map back to the derived fields
  - Fallback rule for unknown labels (lowercase, no spaces)
  - Fuzzy suggestions for near-miss labels never change the mapping
"""

import pytest

from config.column_mapping import EXPORT_ONLY_HEADERS, HEADER_TO_FIELD
from config.schema import EXPORT_COLUMNS
from processing.column_mapper import ColumnMappingResult, map_columns, map_header


# ═══════════════════════════════════════════════════════════════════════════
# Known labels
# ═══════════════════════════════════════════════════════════════════════════

class TestKnownHeaders:
    @pytest.mark.parametrize("label,field_name", sorted(HEADER_TO_FIELD.items()))
    def test_feed_label(self, label, field_name):
        assert map_header(label) == field_name

    @pytest.mark.parametrize("label,field_name", sorted(EXPORT_ONLY_HEADERS.items()))
    def test_export_only_label(self, label, field_name):
        assert map_header(label) == field_name

    def test_every_export_column_maps_back(self):
        for label, field_name in EXPORT_COLUMNS:
            assert map_header(label) == field_name

    def test_identity_label(self):
        assert map_header("FORMA 8 SALMI") == "forma8Salmi"


# ═══════════════════════════════════════════════════════════════════════════
# Fallback
# ═══════════════════════════════════════════════════════════════════════════

class TestFallback:
    def test_foo_bar(self):
        assert map_header("FOO BAR") == "foobar"

    def test_lookup_is_case_sensitive(self):
        """Only exact labels hit the table; other casings use the fallback."""
        assert map_header("forma 8 salmi") == "forma8salmi"

    def test_only_spaces_removed(self):
        assert map_header("Nº DE GUIA/REMISION") == "nºdeguia/remision"

    def test_empty_header(self):
        assert map_header("") == ""


# ═══════════════════════════════════════════════════════════════════════════
# map_columns
# ═══════════════════════════════════════════════════════════════════════════

class TestMapColumns:
    def test_total_mapping(self):
        headers = ["FORMA 8 SALMI", "ESTADO", "FOO BAR"]
        result = map_columns(headers)

        assert isinstance(result, ColumnMappingResult)
        assert list(result.mapping) == headers
        assert result.mapping["FOO BAR"] == "foobar"

    def test_fallback_listed(self):
        result = map_columns(["FORMA 8 SALMI", "FOO BAR"])
        assert result.fallback == ["FOO BAR"]

    def test_typo_gets_suggestion(self):
        result = map_columns(["FECHA DE DESPACHOO"])
        assert result.mapping["FECHA DE DESPACHOO"] == "fechadedespachoo"
        assert result.suggestions["FECHA DE DESPACHOO"] == "FECHA DE DESPACHO"

    def test_unrelated_header_has_no_suggestion(self):
        result = map_columns(["FOO BAR"])
        assert "FOO BAR" not in result.suggestions

    def test_deterministic(self):
        headers = list(HEADER_TO_FIELD) + ["OTRA COLUMNA"]
        assert map_columns(headers).mapping == map_columns(headers).mapping
