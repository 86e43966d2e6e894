"""CLIConfig: Command-line operational overrides.

Minimal configuration for operational parameters that commonly change
between runs: output paths, database location, rollup zone, verbosity.

This schema handles command-line arguments parsed by argparse.
"""

from typing import Literal, Optional
from isodash.schemas.base import IsodashBaseModel


class CLIConfig(IsodashBaseModel):
    """Command-line configuration overrides.

    Operational-only settings that override user and param configs.
    Highest priority in config resolution.

    Usage
    -----
        cli_cfg = CLIConfig(
            base_dir="/scratch/isodash",
            log_level="DEBUG",
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    base_dir: Optional[str] = None
    db_path: Optional[str] = None
    timezone: Optional[str] = None
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)

        if self.db_path is not None:
            overrides["db_path"] = str(self.db_path)

        if self.timezone is not None:
            overrides["aggregation"] = {"timezone": self.timezone}

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
