"""
Feed header mapping configuration.

Maps the exact column labels of the published requisition spreadsheet to the
canonical record field names used throughout the pipeline.
"""

# ---------------------------------------------------------------------------
# Feed labels: exact header text → record field.
# Matching is exact (case and spacing included); anything else goes through
# the fallback rule in processing/column_mapper.py.
# ---------------------------------------------------------------------------
HEADER_TO_FIELD: dict[str, str] = {
    "UNIDAD EJECUTORA": "unidadEjecutora",
    "TIPO PEDIDO": "tipoPedido",
    "FORMA 8 SALMI": "forma8Salmi",
    "FORMA 8 SISCONI": "forma8Sisconi",
    "DIVISION": "division",
    "GRUPO": "grupo",
    "TIPO DE SUSTANCIAS": "tipoSustancias",
    "CANTIDAD TOTAL ASIGNADA": "cantidadTotalAsignada",
    "CANTIDAD TOTAL SOLICITADA": "cantidadTotalSolicitada",
    "CANTIDAD DE RENGLONES ASIGNADOS": "cantidadRenglonesAsignados",
    "CANTIDAD DE RENGLONES SOLICITADOS": "cantidadRenglonesSolicitados",
    "FECHA DE LA F8": "fechaF8",
    "FECHA DE RECIBO DE LA F8": "fechaRecepcionF8",
    "FECHA DE ASIGNACION": "fechaAsignacion",
    "FECHA DE SALIDA EN SALMI": "fechaSalidaSalmi",
    "FECHA DE DESPACHO": "fechaDespacho",
    "FECHA DE FACTURACION EN COMPUTO": "fechaFacturacion",
    "FECHA DE EMPACADO": "fechaEmpacado",
    "FECHA PROYECTADA DE ENTREGA": "fechaProyectadaEntrega",
    "FECHA DE ENTREGA REAL": "fechaEntregaReal",
    "ESTADO": "estado",
    "TIEMPO DE PROCESAMIENTO": "tiempoProcesamiento",
    "PEDIDO COMPLETADO": "pedidoCompletado",
    "FILL RATE POR CANTIDAD": "fillRateCantidad",
    "FILL RATE POR RENGLON": "fillRateRenglon",
    "COMENTARIOS": "comentarios",
}

# ---------------------------------------------------------------------------
# Labels that only appear in files produced by output/csv_exporter.py.
# Mapped so an exported file can be fed back in without losing the
# derived columns.
# ---------------------------------------------------------------------------
EXPORT_ONLY_HEADERS: dict[str, str] = {
    "PORCENTAJE AVANCE": "porcentajeAvance",
    "COCIENTE I/J": "cocienteIJ",
    "COCIENTE K/L": "cocienteKL",
}

KNOWN_HEADERS: dict[str, str] = {**HEADER_TO_FIELD, **EXPORT_ONLY_HEADERS}
