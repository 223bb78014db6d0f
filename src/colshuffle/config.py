"""
Run configuration for table-shuffle.

An optional YAML file can carry the database name, the table list and the
session settings used while shuffling:

    database: mydb
    seed: 1234
    tables:
      - users:id:name,email
      - table: orders
        id: order_id
        columns: [amount, note]
    session:
      bulk_insert_buffer_size: 268435456
      unique_checks: false
      foreign_key_checks: false

Values given on the command line take precedence over the file.
"""

import logging
import os

import yaml

from colshuffle.exceptions import ConfigError
from colshuffle.settings import SessionSettings

logger = logging.getLogger(__name__)


def load_config(path=None) -> dict:
    """
    Load the YAML run configuration, filling defaults for missing keys.

    Args:
        path: Path to the YAML file. None returns the defaults only.

    Returns:
        dict with 'database', 'tables', 'seed' and 'session' keys

    Raises:
        ConfigError: if the file is missing, unreadable, or malformed
    """
    cfg = {}
    if path is not None:
        if not os.path.exists(path):
            raise ConfigError(f"Config file not found: {path}")
        try:
            with open(path, 'r') as f:
                cfg = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not load config file {path}: {e}")
        if not isinstance(cfg, dict):
            raise ConfigError(f"Config file {path} must contain a mapping at the top level")
        logger.debug(f"Loaded config from {path}")

    cfg.setdefault('database', None)
    cfg.setdefault('tables', [])
    cfg.setdefault('seed', None)
    cfg.setdefault('session', {})

    if not isinstance(cfg['tables'], list):
        raise ConfigError("'tables' must be a list of table specifications")
    if not isinstance(cfg['session'], dict):
        raise ConfigError("'session' must be a mapping")
    if cfg['seed'] is not None and not isinstance(cfg['seed'], int):
        raise ConfigError(f"'seed' must be an integer, got {cfg['seed']!r}")

    return cfg


def session_settings_from_config(cfg: dict, keep_checks: bool = False) -> SessionSettings:
    """Build SessionSettings from the 'session' section of a loaded config."""
    session_cfg = dict(cfg.get('session') or {})
    unknown = set(session_cfg) - set(SessionSettings.FIELDS)
    if unknown:
        raise ConfigError(f"Unknown session setting(s): {', '.join(sorted(unknown))}")

    if keep_checks:
        session_cfg['unique_checks'] = True
        session_cfg['foreign_key_checks'] = True

    try:
        return SessionSettings(**session_cfg)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid session settings: {e}")
