# src/order_tracking_status/rules/status_mapper.py
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional

from order_tracking_status.models import TimelineStatus

# Code 0 never comes from the TPL; it is the synthetic "awaiting preparation"
# status used while an order has no tracking code yet.
PREPARATION_CODE = 0

UNMAPPED_DESCRIPTION = "Status não mapeado"


def _ts(code: str, title: str, message: str) -> TimelineStatus:
    return TimelineStatus(code=code, title=title, message=message)


# internalCode (TPL) -> customer timeline. Several internal codes share a
# timeline code on purpose (e.g. 10 and 20 both render as "2").
_TIMELINE: Mapping[int, TimelineStatus] = MappingProxyType({
    0: _ts("0", "Em preparação", "Estamos preparando seu pedido com carinho"),
    1: _ts("1", "Pedido recebido", "Recebemos seu pedido e já estamos processando"),
    5: _ts("0", "Em preparação", "Seu pedido está sendo separado no estoque"),
    10: _ts("2", "Separando pedido", "Seu pedido está sendo preparado para envio"),
    20: _ts("2", "Separando pedido", "Seu pedido está sendo conferido"),
    25: _ts("3", "Nota fiscal emitida", "A nota fiscal do seu pedido foi gerada"),
    30: _ts("3", "Pronto para despacho", "Seu pedido está pronto para ser enviado"),
    50: _ts("4", "Despachado", "Seu pedido foi enviado para a transportadora"),
    60: _ts("4", "Coletado pela transportadora", "A transportadora já retirou seu pedido"),
    70: _ts("5", "Em trânsito", "Seu pedido está a caminho"),
    75: _ts("6", "Saiu para entrega", "Seu pedido saiu para entrega e chegará em breve"),
    90: _ts("7", "Entregue", "Seu pedido foi entregue com sucesso!"),
    # occurrences
    80: _ts("8", "Ocorrência", "Houve uma ocorrência com seu pedido. Estamos resolvendo"),
    100: _ts("9", "Falha na entrega", "Não conseguimos entregar. Nova tentativa será feita"),
    110: _ts("9", "Pedido recusado", "O pedido foi recusado no endereço de entrega"),
    1010: _ts("8", "Endereço incorreto", "O endereço de entrega precisa ser corrigido"),
    1020: _ts("8", "Destinatário ausente", "Destinatário ausente. Nova tentativa será feita"),
    1040: _ts("8", "Aguardando retirada", "Seu pedido está disponível para retirada"),
    # terminal / other
    200: _ts("10", "Pedido cancelado", "Este pedido foi cancelado"),
    300: _ts("10", "Devolvido", "O pedido foi devolvido ao remetente"),
    400: _ts("10", "Extraviado", "O pedido está sendo localizado"),
    510: _ts("4", "Registrado na transportadora", "A transportadora registrou seu pedido"),
    1150: _ts("3", "Volume preparado", "O volume do seu pedido foi preparado"),
})

# The TPL's own description of each internal code (operator-facing only).
_CARRIER_DESCRIPTIONS: Mapping[int, str] = MappingProxyType({
    1: "Pedido recebido",
    3: "Aguardando WMS",
    5: "Aguardando picking",
    7: "Integrado WMS (obsoleto)",
    8: "Aguardando nota",
    10: "Picking digital realizado",
    13: "Pedido cancelado",
    20: "Checkout",
    25: "Nota recebida",
    28: "Rastreador recebido",
    30: "Pedido separado para checkout",
    50: "Despachado",
    60: "Coletado pela transportadora",
    70: "Em trânsito",
    75: "Saiu para entrega",
    80: "Houve alguma ocorrência",
    90: "Entregue",
    100: "Falha na entrega",
    110: "Pedido recusado",
    200: "Pedido cancelado",
    300: "Pedido devolvido à origem",
    400: "Pedido extraviado",
    411: "Roubo de carga",
    500: "Redespacho",
    510: "Registros da transportadora",
    1002: "Seriais definidos",
    1010: "Endereço incorreto",
    1020: "Destinatário ausente",
    1040: "Objeto aguardando retirada",
    1100: "Objeto não procurado",
    1150: "Volume preparado",
    1199: "Aguardando CTE",
    1200: "CTE gerado",
    9999: "Em tratativa com a transportadora",
    10002: "Avaria",
    10003: "Aviso de coleta enviado à transportadora",
    10004: "Parado no posto fiscal",
    10006: "Volumes ajustado via WMS",
    10007: "Peso ajustado via WMS",
    10008: "Detectado erro de endereço no pedido",
})


def map_by_internal_code(internal_code: Optional[int]) -> Optional[TimelineStatus]:
    """
    Map a TPL internalCode to its customer timeline status.

    Returns None for None or for any code without an entry; callers must drop
    such events instead of surfacing them as "unknown".
    """
    if internal_code is None:
        return None
    return _TIMELINE.get(internal_code)


def is_mapped(internal_code: Optional[int]) -> bool:
    return internal_code is not None and internal_code in _TIMELINE


def preparation_status() -> TimelineStatus:
    """The "Em preparação" status shown while there is no tracking code."""
    return _TIMELINE[PREPARATION_CODE]


def all_mappings() -> Mapping[int, TimelineStatus]:
    return _TIMELINE


def describe_internal_code(internal_code: Optional[int]) -> str:
    if internal_code is None:
        return UNMAPPED_DESCRIPTION
    return _CARRIER_DESCRIPTIONS.get(internal_code, UNMAPPED_DESCRIPTION)
