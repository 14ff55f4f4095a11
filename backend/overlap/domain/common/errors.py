"""Error taxonomy shared by every domain package."""

from __future__ import annotations


class DomainError(Exception):
	"""Base class carrying a machine-readable ``reason``."""

	reason: str = "unknown"

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class InvalidInput(DomainError):
	reason = "invalid_input"


class StorageFailure(DomainError):
	"""Any persistence-layer failure. The original error is chained as ``__cause__``."""

	reason = "storage_failure"

	def __init__(self, operation: str = "storage") -> None:
		super().__init__()
		self.operation = operation

	def __str__(self) -> str:
		return f"{self.reason}:{self.operation}"


class ConfigurationFailure(DomainError):
	"""Missing or unusable process configuration; not recoverable per request."""

	reason = "configuration_failure"
