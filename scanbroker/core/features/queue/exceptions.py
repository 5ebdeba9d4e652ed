# (c) Copyright Datacraft, 2026
"""Queue policy violations.

Each carries a human readable reason and the HTTP status routers answer
with; nothing has been written when one is raised.
"""


class QueueError(Exception):
	"""Queue operation rejected."""
	status_code = 400


class DocumentNotFoundError(QueueError):
	status_code = 404

	def __init__(self, document_id: str):
		self.document_id = document_id
		super().__init__(f"Document {document_id} not found")


class NotAuthorizedError(QueueError):
	"""Actor's role does not permit the operation."""
	status_code = 403


class ConcurrencyLimitError(QueueError):
	"""Staff already holds as many documents as allowed."""
	status_code = 409

	def __init__(self, limit: int, current: int):
		self.limit = limit
		self.current = current
		super().__init__(
			f"Concurrency limit reached: {current} of {limit} documents in progress"
		)


class ScanTypeNotAllowedError(QueueError):
	status_code = 403


class MissingReportError(QueueError):
	"""A report required by the document's scan type was not supplied."""
	status_code = 422


class InvalidTransitionError(QueueError):
	"""Document is not in a state that allows the operation."""
	status_code = 409
