"""
Configuration loader
"""
import logging
import os
import yaml
from pathlib import Path
from typing import Optional

from elimination_chamber.errors import StorageFailure
from elimination_chamber.models import ChamberConfig
from elimination_chamber.services.storage import write_bytes_atomic


DEFAULT_CONFIG_PATH = "config/elimination_chamber.yaml"
CONFIG_ENV_VAR = "CHAMBER_CONFIG"

logger = logging.getLogger(__name__)


def resolve_config_path(config_path: Optional[str] = None) -> str:
    """Explicit path, else $CHAMBER_CONFIG, else the default location"""
    return config_path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> ChamberConfig:
    """
    Load configuration from YAML file

    Args:
        config_path: Path to config file

    Returns:
        ChamberConfig object

    Raises:
        FileNotFoundError: If the config file does not exist
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    return ChamberConfig(**data)


def load_config_or_default(config_path: Optional[str] = None) -> ChamberConfig:
    """
    Load configuration, falling back to defaults when the default file is absent

    A path given explicitly (argument or environment) must exist.
    """
    explicit = config_path or os.environ.get(CONFIG_ENV_VAR)
    path = resolve_config_path(config_path)
    if not explicit and not Path(path).exists():
        logger.warning(f"Config file {path} not found, using built-in defaults")
        return ChamberConfig()
    return load_config(path)


def update_lives_start(lives: int, config_path: str = DEFAULT_CONFIG_PATH) -> ChamberConfig:
    """
    Persist a new default for starting lives

    Only livesStart changes; other keys keep their values and order. The
    result is validated before it replaces the file.

    Returns:
        The configuration as written

    Raises:
        FileNotFoundError: If the config file does not exist
        StorageFailure: If the file cannot be read or replaced
    """
    path = Path(config_path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        raw = yaml.safe_load(path.read_text(encoding='utf-8')) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise StorageFailure("Failed to read config file", path=config_path, cause=repr(exc)) from exc

    raw['livesStart'] = lives
    config = ChamberConfig(**raw)

    text = yaml.safe_dump(raw, sort_keys=False, allow_unicode=True)
    try:
        write_bytes_atomic(path, text.encode('utf-8'))
    except OSError as exc:
        raise StorageFailure("Failed to write config file", path=config_path, cause=repr(exc)) from exc

    logger.info(f"✅ Default lives set to {lives} in {config_path}")
    return config
