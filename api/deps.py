"""
API Dependencies

Dependency injection for the query API: configuration loading and the
ProofClient shared through app.state.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from fastapi import Request

from api.errors import InternalError
from core.config.runtime import ProofConfig
from orchestrator.pipeline import ProofClient

logger = logging.getLogger(__name__)


def load_config(path: Optional[str | Path] = None) -> ProofConfig:
    """Load ProofConfig from a YAML file, then overlay environment variables.

    Search order for the config file:
      1. the explicit path argument
      2. $PROOF_CONFIG
      3. ./proof.yaml
      4. ~/.config/proof/config.yaml

    Environment variables ALWAYS override config file values.
    The .env file is loaded automatically by core.config.runtime on import.
    """
    if path is not None:
        return ProofConfig.from_yaml(path).with_env_overrides()

    search_paths = [
        Path(p) for p in [os.getenv("PROOF_CONFIG")] if p
    ] + [
        Path.cwd() / "proof.yaml",
        Path.home() / ".config" / "proof" / "config.yaml",
    ]

    for candidate in search_paths:
        if candidate.exists():
            logger.info(f"Loaded config from {candidate}")
            return ProofConfig.from_yaml(candidate).with_env_overrides()

    # No config file found; defaults plus environment
    return ProofConfig.from_env()


def get_client(request: Request) -> ProofClient:
    """The ProofClient installed on the application."""
    client = getattr(request.app.state, "proof_client", None)
    if client is None:
        raise InternalError("Proof client is not configured")
    return client
