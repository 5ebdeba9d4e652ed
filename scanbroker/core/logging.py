# (c) Copyright Datacraft, 2026
"""Logging helpers."""
from logging.config import dictConfig
from pathlib import Path

import yaml


def configure_logging(config_path: Path | None) -> bool:
	"""Apply a YAML dictConfig file if it exists.

	Returns True when a configuration was loaded.
	"""
	if config_path is None:
		return False

	config_path = Path(config_path)
	if not (config_path.exists() and config_path.is_file()):
		return False

	with open(config_path, "r") as stream:
		config = yaml.safe_load(stream)

	dictConfig(config)
	return True
