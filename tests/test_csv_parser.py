"""
Tests for processing/csv_parser.py

Covers: header mapping, quoted commas, blank-line skipping, short and long
rows, CRLF input, empty feeds, and derived-field computation at parse time.
"""

from datetime import datetime

from processing.csv_parser import CsvParseResult, parse_csv, parse_csv_line

NOW = datetime(2024, 2, 1)

HEADER = (
    "UNIDAD EJECUTORA,TIPO PEDIDO,FORMA 8 SALMI,DIVISION,ESTADO,"
    "FECHA DE RECIBO DE LA F8,FECHA DE DESPACHO,COMENTARIOS"
)


# ═══════════════════════════════════════════════════════════════════════════
# Line splitting
# ═══════════════════════════════════════════════════════════════════════════

class TestParseCsvLine:
    def test_plain_values(self):
        assert parse_csv_line("a,b,c") == ["a", "b", "c"]

    def test_values_are_trimmed(self):
        assert parse_csv_line(" a , b ,c ") == ["a", "b", "c"]

    def test_quoted_comma_kept(self):
        assert parse_csv_line('A1,"Hospital, Central",X') == ["A1", "Hospital, Central", "X"]

    def test_empty_values(self):
        assert parse_csv_line("a,,c,") == ["a", "", "c", ""]

    def test_unterminated_quote_runs_to_end(self):
        assert parse_csv_line('a,"b,c') == ["a", "b,c"]

    def test_every_quote_toggles(self):
        """No escaped-quote support: "" simply closes and reopens."""
        assert parse_csv_line('"say ""hi"", ok",x') == ["say hi, ok", "x"]


# ═══════════════════════════════════════════════════════════════════════════
# Full parse
# ═══════════════════════════════════════════════════════════════════════════

class TestParseCsv:
    def test_headers_mapped_to_fields(self):
        text = HEADER + "\nUE1,ORDINARIO,A1,NORTE,FACTURADO,2024-01-01,2024-01-10,ok\n"
        result = parse_csv(text, now=NOW)

        assert isinstance(result, CsvParseResult)
        assert len(result.records) == 1
        record = result.records[0]
        assert record["unidadEjecutora"] == "UE1"
        assert record["tipoPedido"] == "ORDINARIO"
        assert record["forma8Salmi"] == "A1"
        assert record["estado"] == "FACTURADO"
        assert record["comentarios"] == "ok"

    def test_derived_fields_computed(self):
        text = HEADER + "\nUE1,ORDINARIO,A1,NORTE,FACTURADO,2024-01-01,2024-01-10,ok\n"
        record = parse_csv(text, now=NOW).records[0]

        assert record["tiempoProcesamiento"] == "9 días"
        assert record["porcentajeAvance"] == 22
        assert record["cocienteIJ"] == "N/A"
        assert record["cocienteKL"] == "N/A"

    def test_quoted_comment_with_comma(self):
        text = HEADER + '\nUE1,ORDINARIO,A1,NORTE,,,,"urgente, llamar"\n'
        record = parse_csv(text, now=NOW).records[0]
        assert record["comentarios"] == "urgente, llamar"

    def test_blank_lines_skipped(self):
        text = "\n" + HEADER + "\n\nUE1,T,A1,N,,,,\n   \nUE2,T,A2,N,,,,\n\n"
        result = parse_csv(text, now=NOW)
        assert [r["forma8Salmi"] for r in result.records] == ["A1", "A2"]

    def test_crlf_line_endings(self):
        text = HEADER + "\r\nUE1,T,A1,N,ENTREGADA,,,fin\r\n"
        result = parse_csv(text, now=NOW)
        assert len(result.records) == 1
        assert result.records[0]["comentarios"] == "fin"
        assert result.records[0]["estado"] == "ENTREGADA"

    def test_short_row_padded(self):
        text = HEADER + "\nUE1,T,A1\n"
        result = parse_csv(text, now=NOW)
        record = result.records[0]
        assert record["division"] == ""
        assert record["comentarios"] == ""
        assert result.warnings == []

    def test_long_row_warns_and_keeps_columns(self):
        text = HEADER + "\nUE1,T,A1,N,,,,c,extra1,extra2\n"
        result = parse_csv(text, now=NOW)
        assert result.records[0]["comentarios"] == "c"
        assert len(result.warnings) == 1
        assert result.warnings[0]["line"] == 2

    def test_unknown_header_uses_fallback_key(self):
        text = "FORMA 8 SALMI,FOO BAR\nA1,x\n"
        record = parse_csv(text, now=NOW).records[0]
        assert record["foobar"] == "x"

    def test_empty_text(self):
        result = parse_csv("", now=NOW)
        assert result.records == []
        assert result.headers == []

    def test_header_only(self):
        result = parse_csv(HEADER + "\n", now=NOW)
        assert result.records == []
        assert len(result.headers) == 8

    def test_column_mapping_reported(self):
        result = parse_csv(HEADER + "\n", now=NOW)
        assert result.column_mapping.mapping["FORMA 8 SALMI"] == "forma8Salmi"
        assert result.column_mapping.fallback == []
