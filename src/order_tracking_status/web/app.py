# src/order_tracking_status/web/app.py
from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Path, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from order_tracking_status.api.errors import RequestCancelled, UpstreamUnavailable
from order_tracking_status.config.env import get_app_env
from order_tracking_status.services.factory import build_service
from order_tracking_status.services.resolution import TrackingResolutionService

logger = logging.getLogger("order_tracking_status.web")

UPSTREAM_UNAVAILABLE_MESSAGE = "TPL indisponível."
EMPTY_IDENTIFIER_MESSAGE = "Identificador vazio."

# nginx convention for "client closed request"
CLIENT_CLOSED_REQUEST = 499


class RastreioRequest(BaseModel):
    identificador: str = Field(..., description="CPF (com ou sem máscara) ou e-mail do cliente")


class OrderInfoSchema(BaseModel):
    id: Optional[str] = None
    number: Optional[str] = None
    date: Optional[str] = None
    prediction: Optional[str] = None
    iderp: Optional[str] = None


class ShippingEventSchema(BaseModel):
    code: Optional[str] = None
    dscode: Optional[str] = None
    message: Optional[str] = None
    detalhe: Optional[str] = None
    complement: Optional[str] = None
    dtshipping: Optional[str] = None
    internalcode: Optional[int] = None


class RastreioResponse(BaseModel):
    code: int
    message: Optional[str] = None
    info: Optional[OrderInfoSchema] = None
    shippingevents: List[ShippingEventSchema] = []


@lru_cache(maxsize=1)
def _default_service() -> TrackingResolutionService:
    # one service per process so the TPL token cache is shared by all requests
    return build_service(get_app_env(strict=True), logger=logging.getLogger("order_tracking_status"))


def get_tracking_service() -> TrackingResolutionService:
    return _default_service()


router = APIRouter(prefix="/api/rastreio", tags=["Rastreio"])


def _consultar(identificador: Optional[str], svc: TrackingResolutionService) -> dict:
    if identificador is None or not identificador.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=EMPTY_IDENTIFIER_MESSAGE)
    result = svc.resolve(identificador.strip())
    return result.to_dict()


@router.post("", response_model=RastreioResponse, status_code=status.HTTP_200_OK)
def consultar_post(
    payload: RastreioRequest = Body(...),
    svc: TrackingResolutionService = Depends(get_tracking_service),
):
    """
    Consulta o rastreio por CPF ou e-mail.

    CPF/e-mail não localizado volta como `code` 404 no corpo; apenas falhas da
    TPL produzem HTTP 502.
    """
    return _consultar(payload.identificador, svc)


@router.get("", response_model=RastreioResponse, status_code=status.HTTP_200_OK)
def consultar_query(
    identificador: Optional[str] = Query(None),
    svc: TrackingResolutionService = Depends(get_tracking_service),
):
    return _consultar(identificador, svc)


@router.get("/{identificador}", response_model=RastreioResponse, status_code=status.HTTP_200_OK)
def consultar_path(
    identificador: str = Path(...),
    svc: TrackingResolutionService = Depends(get_tracking_service),
):
    return _consultar(identificador, svc)


async def upstream_unavailable_handler(request: Request, exc: UpstreamUnavailable) -> JSONResponse:
    logger.warning("TPL unavailable on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"message": UPSTREAM_UNAVAILABLE_MESSAGE, "timeout": bool(exc.timeout)},
    )


async def request_cancelled_handler(request: Request, exc: RequestCancelled) -> JSONResponse:
    logger.debug("Lookup cancelled on %s", request.url.path)
    return JSONResponse(status_code=CLIENT_CLOSED_REQUEST, content={"message": "Consulta cancelada."})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Tracking API",
        description="Rastreamento de pedidos de resgate com integração TPL",
        version="1.0.0",
    )
    app.include_router(router)
    app.add_exception_handler(UpstreamUnavailable, upstream_unavailable_handler)
    app.add_exception_handler(RequestCancelled, request_cancelled_handler)

    @app.get("/health", tags=["Health"])
    def health():
        return {"status": "ok"}

    return app
