# (c) Copyright Datacraft, 2026
"""
Report analyzer client.

Classification of a report PDF (which report type it is and the
percentage it states) is done by an external service. This module only
speaks its HTTP protocol:

	POST <analyzer_url>  multipart "file"
	200 {"report_type": "similarity" | "ai" | null, "percentage": 12.5 | null}
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from scanbroker.core.config import Settings, get_settings
from scanbroker.core.storage import REPORT_CONTENT_TYPE
from scanbroker.core.types import ReportType

logger = logging.getLogger(__name__)


class AnalyzerError(Exception):
	"""Raised when a report could not be classified."""


@dataclass
class Classification:
	# None when the analyzer could not tell the report type
	report_type: ReportType | None
	percentage: float | None = None

	@property
	def resolved(self) -> bool:
		return self.report_type is not None


class ReportAnalyzer(ABC):
	@abstractmethod
	async def analyze(self, name: str, data: bytes) -> Classification:
		"""Classify a report file.

		Raises:
			AnalyzerError: If the analyzer is unreachable or answers garbage
		"""
		...


def parse_classification(payload: dict) -> Classification:
	raw_type = payload.get("report_type")
	raw_pct = payload.get("percentage")

	try:
		report_type = ReportType(raw_type) if raw_type else None
	except ValueError as e:
		raise AnalyzerError(f"Unknown report type: {raw_type!r}") from e

	percentage = None
	if raw_pct is not None:
		try:
			percentage = float(raw_pct)
		except (TypeError, ValueError) as e:
			raise AnalyzerError(f"Invalid percentage: {raw_pct!r}") from e
		if not 0 <= percentage <= 100:
			raise AnalyzerError(f"Percentage out of range: {percentage}")

	return Classification(report_type=report_type, percentage=percentage)


class HttpReportAnalyzer(ReportAnalyzer):
	"""Analyzer reached over HTTP."""

	def __init__(
		self,
		url: str,
		api_key: str | None = None,
		timeout: float = 60.0,
	):
		self.url = url
		self.api_key = api_key
		self.timeout = timeout

	async def analyze(self, name: str, data: bytes) -> Classification:
		headers = {}
		if self.api_key:
			headers["Authorization"] = f"Bearer {self.api_key}"

		try:
			async with httpx.AsyncClient(timeout=self.timeout) as client:
				response = await client.post(
					self.url,
					files={"file": (name, data, REPORT_CONTENT_TYPE)},
					headers=headers,
				)
				response.raise_for_status()
				payload = response.json()
		except httpx.HTTPError as e:
			raise AnalyzerError(f"Analyzer request failed: {e}") from e
		except ValueError as e:
			raise AnalyzerError(f"Analyzer returned invalid JSON: {e}") from e

		if not isinstance(payload, dict):
			raise AnalyzerError("Analyzer response is not an object")

		classification = parse_classification(payload)
		logger.debug(
			f"Analyzed {name}: type={classification.report_type}, "
			f"percentage={classification.percentage}"
		)
		return classification


def get_report_analyzer(settings: Settings | None = None) -> ReportAnalyzer:
	settings = settings or get_settings()
	return HttpReportAnalyzer(
		url=settings.analyzer_url,
		api_key=settings.analyzer_api_key,
		timeout=settings.analyzer_timeout,
	)
