"""
rental_config -- single public entrypoint for runtime configuration.

Responsibility:
    ``get_active_config()`` is the only way to obtain configuration.  No other
    component reads configuration files or environment variables directly.

Architecture position:
    Configuration sits above ``rental_kernel`` and ``rental_engines`` and
    below ``rental_services`` callers.  The kernel MUST NEVER import from
    ``rental_config``; ``rental_config.bridges`` translates the config into
    kernel and engine objects.

Failure modes:
    - FileNotFoundError: ``path`` does not exist.
    - ValueError / InvalidCurrencyError: a section fails validation.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``RENTAL_CONFIG_TRACE`` log entry with the config_id, version, checksum
    and effective policy values.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from rental_config.loader import apply_env_overrides, load_yaml_file, parse_config
from rental_config.schema import RentalConfig

_logger = logging.getLogger("rental_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> RentalConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to the bundled defaults.yaml.
        environ: Environment used for overrides.  Defaults to ``os.environ``.

    Returns:
        Frozen RentalConfig with its checksum.
    """
    source = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    data = apply_env_overrides(
        load_yaml_file(source),
        os.environ if environ is None else environ,
    )
    config = parse_config(data)

    _logger.info(
        "RENTAL_CONFIG_TRACE",
        extra={
            "trace_type": "RENTAL_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(source),
            "default_currency": config.ledger.default_currency,
            "minimum_delivery_status": config.lifecycle.minimum_delivery_status,
            "max_conflict_attempts": config.retry.max_conflict_attempts,
        },
    )
    return config


__all__ = ["DEFAULT_CONFIG_PATH", "RentalConfig", "get_active_config"]
