from __future__ import annotations


class ClassroomError(Exception):
	"""Base error carrying a message that can be shown to the user as-is."""

	def __init__(self, message: str) -> None:
		super().__init__(message)
		self.message = message


class DraftValidationError(ClassroomError):
	pass


class NotFoundError(ClassroomError):
	pass


class ConflictError(ClassroomError):
	pass


class RemoteServiceError(ClassroomError):
	"""A collaborator call failed. The caller may retry; nothing is retried here."""


class AIServiceError(RemoteServiceError):
	pass


class PersistenceError(RemoteServiceError):
	pass
