# src/order_tracking_status/repository/sql.py
from __future__ import annotations

import logging
from typing import Callable, Optional

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, create_engine, func
from sqlalchemy.orm import Session, declarative_base, joinedload, relationship, selectinload, sessionmaker

from order_tracking_status.models import OrderRecord
from order_tracking_status.repository.base import (
    IDENTIFIER_CPF,
    classify_identifier,
    recency_key,
)

Base = declarative_base()

logger = logging.getLogger("order_tracking_status.repository.sql")


class ResgateModel(Base):
    """A gift redemption (one per customer request)."""
    __tablename__ = "TRKG_RESGATE_BRINDES"
    __table_args__ = (
        Index("idx_resgate_cpf", "cpf"),
        Index("idx_resgate_email", "email"),
    )

    id_resgate = Column(Integer, primary_key=True, autoincrement=True)
    id_campanha = Column(Integer, nullable=True)
    data_resgate = Column(DateTime, nullable=True)
    nome = Column(String(200), nullable=True)
    email = Column(String(200), nullable=True)
    cpf = Column(String(14), nullable=True)
    kit_descricao = Column(String(200), nullable=True)
    lote = Column(String(100), nullable=True)
    dt_registro = Column(DateTime, nullable=True)
    dt_atualizacao = Column(DateTime, nullable=True)

    rastreios = relationship("RastreioModel", back_populates="resgate")


class RastreioModel(Base):
    """Tracking row; `cd_rastreio` goes from NULL to a code once dispatched."""
    __tablename__ = "TRKG_RASTREIO_RESGATE"
    __table_args__ = (
        Index("idx_rastreio_cpf", "cpf"),
        Index("idx_rastreio_email", "email"),
    )

    id_rastreio = Column(Integer, primary_key=True, autoincrement=True)
    id_resgate = Column(Integer, ForeignKey("TRKG_RESGATE_BRINDES.id_resgate"), nullable=False)
    cpf = Column(String(14), nullable=True)
    email = Column(String(200), nullable=True)
    cd_rastreio = Column(String(100), nullable=True)
    dt_previsao = Column(Date, nullable=True)
    dt_registro = Column(DateTime, nullable=True)
    dt_atualizacao = Column(DateTime, nullable=True)

    resgate = relationship("ResgateModel", back_populates="rastreios")


def build_session_factory(database_url: str, **engine_kwargs) -> sessionmaker:
    engine = create_engine(database_url, pool_pre_ping=True, **engine_kwargs)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def _to_record(resgate: ResgateModel, rastreio: Optional[RastreioModel]) -> OrderRecord:
    if rastreio is None:
        return OrderRecord(
            order_id=resgate.id_resgate,
            cpf=resgate.cpf,
            email=resgate.email,
            tracking_code=None,
            registered_at=resgate.dt_registro,
            updated_at=resgate.dt_atualizacao,
        )
    return OrderRecord(
        order_id=resgate.id_resgate,
        cpf=rastreio.cpf or resgate.cpf,
        email=rastreio.email or resgate.email,
        tracking_code=rastreio.cd_rastreio,
        predicted_delivery_date=rastreio.dt_previsao,
        registered_at=rastreio.dt_registro or resgate.dt_registro,
        updated_at=rastreio.dt_atualizacao,
    )


class SqlOrderRepository:
    """Looks redemptions up by CPF or e-mail, newest tracking row first.

    Tracking rows are searched first; when none matches, the redemption table
    is searched so a redemption without a tracking row still resolves (and
    is reported as awaiting dispatch).
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str) -> "SqlOrderRepository":
        return cls(build_session_factory(database_url))

    def find_by_identifier(self, identifier: str) -> Optional[OrderRecord]:
        kind, value = classify_identifier(identifier)
        if not value:
            return None

        session = self._session_factory()
        try:
            if kind == IDENTIFIER_CPF:
                rastreio_filter = RastreioModel.cpf == value
                resgate_filter = ResgateModel.cpf == value
            else:
                rastreio_filter = func.lower(RastreioModel.email) == value
                resgate_filter = func.lower(ResgateModel.email) == value

            rastreio = (
                session.query(RastreioModel)
                .options(joinedload(RastreioModel.resgate))
                .filter(rastreio_filter)
                .order_by(
                    func.coalesce(RastreioModel.dt_atualizacao, RastreioModel.dt_registro).desc().nulls_last(),
                    RastreioModel.id_rastreio.desc(),
                )
                .first()
            )
            if rastreio is not None:
                return _to_record(rastreio.resgate, rastreio)

            resgate = (
                session.query(ResgateModel)
                .options(selectinload(ResgateModel.rastreios))
                .filter(resgate_filter)
                .order_by(
                    func.coalesce(ResgateModel.dt_atualizacao, ResgateModel.dt_registro).desc().nulls_last(),
                    ResgateModel.id_resgate.desc(),
                )
                .first()
            )
            if resgate is None:
                logger.debug("No redemption for %s identifier", kind)
                return None

            latest = max(
                resgate.rastreios,
                key=lambda r: recency_key(r.dt_atualizacao, r.dt_registro, r.id_rastreio),
                default=None,
            )
            return _to_record(resgate, latest)
        finally:
            session.close()
