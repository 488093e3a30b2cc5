"""
Entry point for the sandbox node.
"""

import logging

import uvicorn

from hcsclient.common.config import Config

from .core import SandboxNode
from .ledger import SandboxLedger


def start_sandbox(config: Config | None = None, **overrides: object) -> None:
    """Serve a sandbox node until interrupted."""
    if config is None:
        config = Config()
    logging.basicConfig(level=config.LOG_LEVEL)
    node = SandboxNode(config=config, **overrides)
    node.logger.info("Sandbox node listening on %s", node.url)
    uvicorn.run(node.app, host=node.sandbox_host, port=node.sandbox_port)


__all__ = ["SandboxLedger", "SandboxNode", "start_sandbox"]
