"""
Order record schema definitions.

Defines the identity field, which fields are refreshed from the feed on every
sync, which fields the user owns locally, the derived fields, and the valid
status values.  Every processing module reads its field lists from here.
"""

# Natural key of every order.  Doubles as the storage key.
ID_FIELD: str = "forma8Salmi"

# Fields sourced authoritatively from the published feed on every sync.
BASE_FIELDS: list[str] = [
    "unidadEjecutora",
    "tipoPedido",
    "division",
    "grupo",
    "tipoSustancias",
    "forma8Sisconi",
    "fechaProyectadaEntrega",
]

QUANTITY_FIELDS: list[str] = [
    "cantidadTotalAsignada",
    "cantidadTotalSolicitada",
    "cantidadRenglonesAsignados",
    "cantidadRenglonesSolicitados",
]

# Fields whose local value survives a sync unless it is empty.
# fechaF8 and fechaRecepcionF8 are editable but always follow the feed.
PRESERVED_FIELDS: list[str] = QUANTITY_FIELDS + [
    "fechaAsignacion",
    "fechaSalidaSalmi",
    "fechaDespacho",
    "fechaFacturacion",
    "fechaEmpacado",
    "fechaEntregaReal",
    "estado",
    "comentarios",
]

EDITABLE_FIELDS: list[str] = PRESERVED_FIELDS + ["fechaF8", "fechaRecepcionF8"]

DERIVED_FIELDS: list[str] = [
    "tiempoProcesamiento",
    "porcentajeAvance",
    "cocienteIJ",
    "cocienteKL",
]

# Prefix shared by every date field.  Editing one triggers a recompute.
DATE_FIELD_PREFIX: str = "fecha"

RECEIPT_DATE_FIELD: str = "fechaRecepcionF8"

# Candidate "latest activity" dates for processing time, in scan order.
PROCESSING_DATE_FIELDS: list[str] = [
    "fechaF8",
    "fechaAsignacion",
    "fechaSalidaSalmi",
    "fechaDespacho",
    "fechaFacturacion",
    "fechaEmpacado",
    "fechaProyectadaEntrega",
    "fechaEntregaReal",
]

# The nine milestones counted by the progress percentage.
PROGRESS_DATE_FIELDS: list[str] = [
    "fechaF8",
    "fechaRecepcionF8",
    "fechaAsignacion",
    "fechaSalidaSalmi",
    "fechaDespacho",
    "fechaFacturacion",
    "fechaEmpacado",
    "fechaProyectadaEntrega",
    "fechaEntregaReal",
]

STATUS_FIELD: str = "estado"

# Valid order statuses in workflow order.
ORDER_STATUSES: list[str] = [
    "F8 RECIBIDA",
    "F8 RECIBIDA SIN ASIGNAR",
    "EN ASIGNACION",
    "SALIDA DE SALMI",
    "FACTURADO",
    "EMPACADO",
    "ENTREGADA",
]

# Export layout: (column label, record field) in output order.
EXPORT_COLUMNS: list[tuple[str, str]] = [
    ("UNIDAD EJECUTORA", "unidadEjecutora"),
    ("TIPO PEDIDO", "tipoPedido"),
    ("FORMA 8 SALMI", "forma8Salmi"),
    ("DIVISION", "division"),
    ("GRUPO", "grupo"),
    ("TIPO DE SUSTANCIAS", "tipoSustancias"),
    ("CANTIDAD TOTAL ASIGNADA", "cantidadTotalAsignada"),
    ("CANTIDAD TOTAL SOLICITADA", "cantidadTotalSolicitada"),
    ("CANTIDAD DE RENGLONES ASIGNADOS", "cantidadRenglonesAsignados"),
    ("CANTIDAD DE RENGLONES SOLICITADOS", "cantidadRenglonesSolicitados"),
    ("FECHA DE LA F8", "fechaF8"),
    ("FECHA DE RECIBO DE LA F8", "fechaRecepcionF8"),
    ("FECHA DE ASIGNACION", "fechaAsignacion"),
    ("FECHA DE SALIDA EN SALMI", "fechaSalidaSalmi"),
    ("FECHA DE DESPACHO", "fechaDespacho"),
    ("FECHA DE FACTURACION EN COMPUTO", "fechaFacturacion"),
    ("FECHA DE EMPACADO", "fechaEmpacado"),
    ("FECHA PROYECTADA DE ENTREGA", "fechaProyectadaEntrega"),
    ("FECHA DE ENTREGA REAL", "fechaEntregaReal"),
    ("ESTADO", "estado"),
    ("TIEMPO DE PROCESAMIENTO", "tiempoProcesamiento"),
    ("PORCENTAJE AVANCE", "porcentajeAvance"),
    ("COCIENTE I/J", "cocienteIJ"),
    ("COCIENTE K/L", "cocienteKL"),
    ("COMENTARIOS", "comentarios"),
]
