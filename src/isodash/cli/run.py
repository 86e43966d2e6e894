"""Core command execution logic.

Argument parsing lives in isodash.cli.main; this module resolves
configuration, configures logging and opens the store.
"""

import importlib.util
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from isodash.schemas import resolve_config, ParamConfig, UserConfig, CLIConfig, InternalConfig
from isodash.setup_directories import setup_output_directories
from isodash.store import AnalysisStore

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'


def load_user_config_dict(config_path: str) -> dict:
    """Load user config dict from a Python file.

    Returns the raw dict before Pydantic validation.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ValueError
        If no CONFIG dict found in file.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    spec = importlib.util.spec_from_file_location("config_module", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    for name in dir(module):
        if name.startswith('CONFIG'):
            obj = getattr(module, name)
            if isinstance(obj, dict):
                return obj

    raise ValueError(f"No CONFIG dict found in {path}")


def build_config(user_config_path: Optional[str] = None,
                 cli_args: Optional[Dict[str, Any]] = None) -> InternalConfig:
    """Resolve configuration (Param < User file < CLI arguments)."""
    user_cfg = None
    if user_config_path:
        user_cfg = UserConfig.model_validate(load_user_config_dict(user_config_path))

    cli_dict = {k: v for k, v in (cli_args or {}).items() if v is not None}
    cli_cfg = CLIConfig.model_validate(cli_dict) if cli_dict else None

    return resolve_config(ParamConfig(), user_cfg, cli_cfg)


def setup_logging(level: str = "INFO", log_dir=None) -> Optional[Path]:
    """Configure the root logger with console and (optional) file handlers.

    Returns
    -------
    Path or None
        The log file path when ``log_dir`` is given.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(formatter)
    root.addHandler(ch)

    log_path = None
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / "isodash.log"
        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

    logger.debug("Logging: level=%s, file=%s", logging.getLevelName(log_level), log_path)
    return log_path


def open_store(config: InternalConfig) -> AnalysisStore:
    """Create output directories, configure logging and open the record store."""
    output_dirs = setup_output_directories(config.base_dir)
    setup_logging(config.logging.level, output_dirs["logs"])
    return AnalysisStore.from_config(config)
