"""Environment-driven settings for the workflow planner."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .models import OutputFormat, Strategy, coerce_enum

logger = logging.getLogger("workflow_planner.config")

ENV_PREFIX = "WORKFLOW_PLANNER_"
QUALITY_PROFILES = ("standard", "strict", "enterprise")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(slots=True)
class PlannerSettings:
    """Runtime settings for the planner and its MCP server."""

    log_level: str = "INFO"
    log_file: Optional[Path] = None
    strategy: Strategy = Strategy.SYSTEMATIC
    quality_profile: str = "standard"
    output_format: OutputFormat = OutputFormat.ROADMAP
    gate_timeout_scale: float = 1.0
    deterministic_ids: bool = False
    max_workflows: int = 100  # 0 keeps every workflow

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PlannerSettings":
        """Read settings from ``WORKFLOW_PLANNER_*`` variables.

        Unknown or malformed values fall back to the defaults and are
        reported as warnings rather than errors.
        """
        env = os.environ if environ is None else environ

        def read(name: str) -> Optional[str]:
            value = env.get(f"{ENV_PREFIX}{name}")
            return value.strip() if value and value.strip() else None

        settings = cls()

        level = read("LOG_LEVEL")
        if level:
            if level.upper() in LOG_LEVELS:
                settings.log_level = level.upper()
            else:
                logger.warning(f"Ignoring unknown log level {level!r}")

        log_file = read("LOG_FILE")
        if log_file:
            settings.log_file = Path(log_file).expanduser()

        strategy = read("STRATEGY")
        if strategy:
            settings.strategy = coerce_enum(Strategy, strategy, Strategy.SYSTEMATIC)
            if settings.strategy.value != strategy.lower():
                logger.warning(f"Unknown strategy {strategy!r}, using systematic")

        profile = read("QUALITY_PROFILE")
        if profile:
            if profile.lower() in QUALITY_PROFILES:
                settings.quality_profile = profile.lower()
            else:
                logger.warning(f"Unknown quality profile {profile!r}, using standard")

        output_format = read("OUTPUT_FORMAT")
        if output_format:
            settings.output_format = coerce_enum(OutputFormat, output_format, OutputFormat.ROADMAP)

        scale = read("GATE_TIMEOUT_SCALE")
        if scale:
            try:
                parsed = float(scale)
            except ValueError:
                logger.warning(f"Gate timeout scale {scale!r} is not a number")
            else:
                if parsed > 0:
                    settings.gate_timeout_scale = parsed
                else:
                    logger.warning("Gate timeout scale must be positive")

        deterministic = read("DETERMINISTIC_IDS")
        if deterministic:
            settings.deterministic_ids = deterministic.lower() in {"1", "true", "yes", "on"}

        max_workflows = read("MAX_WORKFLOWS")
        if max_workflows:
            try:
                parsed_max = int(max_workflows)
            except ValueError:
                logger.warning(f"Max workflows {max_workflows!r} is not an integer")
            else:
                if parsed_max >= 0:
                    settings.max_workflows = parsed_max
                else:
                    logger.warning("Max workflows must not be negative")

        return settings
