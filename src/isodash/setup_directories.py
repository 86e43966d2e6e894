"""
Directory setup for isodash output.

Layout under the base directory:
- db/       SQLite record store
- exports/  Parquet/CSV view exports
- logs/     Log files
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

SUBDIRECTORIES = ("db", "exports", "logs")


def setup_output_directories(base_output_dir):
    """
    Set up the output directory structure.

    Parameters
    ----------
    base_output_dir : str or Path
        Base output directory (``~`` is expanded).

    Returns
    -------
    dict
        Dictionary with paths: 'base', 'db', 'exports', 'logs'
    """
    base_output_dir = Path(base_output_dir).expanduser().resolve()

    directories = {"base": base_output_dir}
    directories.update({name: base_output_dir / name for name in SUBDIRECTORIES})

    for path in directories.values():
        path.mkdir(parents=True, exist_ok=True)

    logger.debug("Output directories: %s", {k: str(v) for k, v in directories.items()})
    return directories


def get_export_path(output_dirs, view_name, fmt="parquet", suffix=None):
    """
    Get the export file path for a view.

    Parameters
    ----------
    output_dirs : dict
        Output directories from setup_output_directories()
    view_name : str
        View name (e.g. 'latest', 'daily')
    fmt : str
        File extension ('parquet' or 'csv')
    suffix : str, optional
        Extra name part, e.g. the isotope of a ranking export

    Returns
    -------
    Path
        exports/<view_name>[_<suffix>].<fmt>

    Example
    -------
    >>> get_export_path(dirs, 'ranking', 'csv', suffix='Cs-137')
    Path('output/exports/ranking_Cs-137.csv')
    """
    name = f"{view_name}_{suffix}" if suffix else view_name
    return Path(output_dirs["exports"]) / f"{name}.{fmt}"
