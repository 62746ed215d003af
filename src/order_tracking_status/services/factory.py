from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

from order_tracking_status.api.client import ReplayClient
from order_tracking_status.api.tpl import TokenCache, TplAuth, TplClient, TplConfig
from order_tracking_status.config.env import EnvError
from order_tracking_status.models import EnvCfg
from order_tracking_status.repository.base import OrderRepository
from order_tracking_status.services.resolution import TrackingResolutionService


def build_gateway(
    env_cfg: EnvCfg,
    *,
    replay_path: Optional[Path] = None,
    token_cache: Optional[TokenCache] = None,
    logger: Optional[logging.Logger] = None,
):
    """Live TplClient from the environment, or a ReplayClient when a replay file is given."""
    if replay_path is not None:
        return ReplayClient(Path(replay_path))

    if not env_cfg.TPL_BASE_URL or not env_cfg.has_tpl_credentials:
        raise EnvError(
            "TPL_BASE_URL, TPL_API_KEY, TPL_TOKEN and TPL_EMAIL are required for live lookups")

    cfg = TplConfig(
        base_url=env_cfg.TPL_BASE_URL,
        timeout_seconds=env_cfg.TPL_TIMEOUT_SECONDS,
        max_retries=env_cfg.TPL_MAX_RETRIES,
        token_ttl=timedelta(minutes=env_cfg.TPL_TOKEN_TTL_MINUTES),
    )
    auth = TplAuth(
        api_key=env_cfg.TPL_API_KEY,
        token=env_cfg.TPL_TOKEN,
        email=env_cfg.TPL_EMAIL,
    )
    return TplClient(
        auth,
        cfg,
        token_cache=token_cache,
        logger=logger.getChild("tpl") if logger else None,
    )


def build_repository(
    env_cfg: EnvCfg,
    *,
    orders_path: Optional[Path] = None,
) -> OrderRepository:
    """JSON-backed repository when `orders_path` is given, else SQL from DATABASE_URL."""
    if orders_path is not None:
        from order_tracking_status.repository.memory import InMemoryOrderRepository

        return InMemoryOrderRepository.from_json(orders_path)

    if not env_cfg.DATABASE_URL:
        raise EnvError("DATABASE_URL is required when no orders file is given")

    from order_tracking_status.repository.sql import SqlOrderRepository

    return SqlOrderRepository.from_url(env_cfg.DATABASE_URL)


def build_service(
    env_cfg: EnvCfg,
    *,
    replay_path: Optional[Path] = None,
    orders_path: Optional[Path] = None,
    logger: Optional[logging.Logger] = None,
) -> TrackingResolutionService:
    return TrackingResolutionService(
        build_repository(env_cfg, orders_path=orders_path),
        build_gateway(env_cfg, replay_path=replay_path, logger=logger),
        preparation_internal_code=env_cfg.PREPARATION_INTERNAL_CODE,
        logger=logger.getChild("resolution") if logger else None,
    )
