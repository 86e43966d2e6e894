"""Command-line interface for isodash.

``main`` parses arguments; ``run`` holds configuration, logging and
store setup so other entry points can reuse them.
"""

from isodash.cli.run import build_config, load_user_config_dict, open_store, setup_logging

__all__ = ['build_config', 'load_user_config_dict', 'open_store', 'setup_logging']
