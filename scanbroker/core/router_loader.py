# (c) Copyright Datacraft, 2026
"""Feature router discovery."""
import importlib
import logging
from pathlib import Path

from fastapi import APIRouter

logger = logging.getLogger(__name__)

FEATURES_PACKAGE = "scanbroker.core.features"


def discover_routers(features_path: Path) -> list[tuple[APIRouter, str]]:
	"""Import `router` from every features/<name>/router.py.

	Returns:
		(router, feature_name) pairs sorted by feature name
	"""
	routers = []
	for router_file in sorted(Path(features_path).glob("*/router.py")):
		feature_name = router_file.parent.name
		module = importlib.import_module(f"{FEATURES_PACKAGE}.{feature_name}.router")
		router = getattr(module, "router", None)
		if not isinstance(router, APIRouter):
			logger.warning(f"Feature {feature_name} has router.py without an APIRouter")
			continue
		routers.append((router, feature_name))
		logger.debug(f"Registered router for feature {feature_name}")

	return routers
