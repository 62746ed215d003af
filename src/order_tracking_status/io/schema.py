# src/order_tracking_status/io/schema.py
from __future__ import annotations


# accepted headers for the identifier column, in priority order
IDENTIFIER_COLUMNS = ["Identificador", "CPF", "Email", "E-mail"]

IDENTIFIER_COLUMN = "Identificador"
RESULT_COLUMN = "Resultado"

REPORT_COLUMNS = [
    IDENTIFIER_COLUMN,
    RESULT_COLUMN,
    "code",
    "message",
    "Pedido",
    "Previsao",
    "StatusAtual",
    "TimelineCode",
    "DataStatus",
    "InternalCode",
    "StatusTransportadora",
    "Eventos",
    "Erro",
]

RESULT_TRACKED = "Localizado"
RESULT_AWAITING = "Em preparação"
RESULT_NOT_FOUND = "Não localizado"
RESULT_FAILED = "Falha TPL"

SHEET_ALL = "Rastreios"
SHEET_NOT_FOUND = "Não localizados"
SHEET_AWAITING = "Em preparação"
SHEET_FAILED = "Falhas"
SHEET_MARKER = "Marker"
