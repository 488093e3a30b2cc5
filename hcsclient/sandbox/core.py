"""
Sandbox topic service node using FastAPI.

Serves the same HTTP/JSON contract the client speaks, backed by an
in-memory ledger, for local development and tests.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI

from hcsclient.common import Configurable, setup_logger
from hcsclient.common.config import Config

from .ledger import SandboxLedger
from .routes import SandboxRoutes


class SandboxNode(Configurable):
    """Main sandbox node class wiring the ledger into a FastAPI app."""

    def __init__(
        self,
        config: Config | None = None,
        ledger: SandboxLedger | None = None,
        receipt_delay: float = 0.0,
        **overrides: Any,
    ):
        self.config = config or Config()
        self.apply_overrides(
            overrides,
            self.config,
            ["sandbox_host", "sandbox_port", "log_level", "stream_keepalive_interval"],
        )
        self.logger = logging.getLogger(__name__)
        setup_logger(self.logger, self.log_level)

        self.ledger = ledger or SandboxLedger(self.config, receipt_delay=receipt_delay)
        self.routes = SandboxRoutes(self.ledger, self.stream_keepalive_interval)
        self.app = FastAPI(title="hcsclient sandbox node")
        self.app.include_router(self.routes.router(), prefix=self.config.API_PREFIX)

    @property
    def url(self) -> str:
        return f"http://{self.sandbox_host}:{self.sandbox_port}"
