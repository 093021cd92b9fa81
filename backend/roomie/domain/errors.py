"""Domain exceptions shared by the matching and messaging layers."""

from __future__ import annotations


class ProfileDataError(ValueError):
	"""Raised when a stored profile document cannot be normalised."""


class SurveyValidationError(ValueError):
	"""Raised when survey input is rejected before it reaches the scorer."""

	def __init__(self, field: str, reason: str) -> None:
		super().__init__(f"{field}: {reason}")
		self.field = field
		self.reason = reason


class ProfileNotFoundError(LookupError):
	"""Raised when the viewer has no stored profile yet."""


class StoreUnavailableError(RuntimeError):
	"""Raised when the shared store cannot be read."""


class MessagingError(RuntimeError):
	"""Raised by messaging primitives that have no fallback."""


__all__ = [
	"MessagingError",
	"ProfileDataError",
	"ProfileNotFoundError",
	"StoreUnavailableError",
	"SurveyValidationError",
]
