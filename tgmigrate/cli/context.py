"""Shared CLI plumbing: builds the gateway from settings and runs coroutines."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

from tgmigrate.client.tigergraph import TigerGraphClient
from tgmigrate.config import TigerGraphSettings, settings
from tgmigrate.migrations.gateway import StateGateway, TigerGraphGateway


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_gateway(config: TigerGraphSettings | None = None) -> StateGateway:
    """Gateway for the TigerGraph deployment described by `config`."""
    client = TigerGraphClient.from_settings(config or settings)
    return TigerGraphGateway(client)


def run_async(coro: Coroutine) -> Any:
    """Run an async coroutine from sync CLI code."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        # We're already in an async context: shouldn't happen in CLI
        import concurrent.futures
        with concurrent.futures.ThreadPoolExecutor() as pool:
            return pool.submit(asyncio.run, coro).result()
    else:
        return asyncio.run(coro)
