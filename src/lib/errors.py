"""Exception hierarchy for the folder encryption engine."""
from __future__ import annotations
from pathlib import Path
from typing import List, Optional


class SecureFolderError(Exception):
	"""Base class for every error raised by the engine."""


# --- input errors: reported immediately, operation not attempted ---

class InputError(SecureFolderError):
	pass

class InvalidIndex(InputError, LookupError):
	def __init__(self, index: int, count: int):
		super().__init__(f"Invalid directory index {index} (tracking {count})")
		self.index = index; self.count = count

class MissingPassphrase(InputError):
	pass

class WrongPassphrase(InputError):
	pass

class FolderExistsError(InputError):
	pass


# --- setup ---

class InitError(SecureFolderError):
	pass

class ConfigError(SecureFolderError):
	pass

class StateError(SecureFolderError):
	pass


# --- per-file cipher errors ---

class CipherError(SecureFolderError):
	def __init__(self, message: str, path: Optional[Path] = None):
		super().__init__(f"{message}: {path}" if path is not None else message)
		self.path = path

class EncryptError(CipherError):
	pass

class DecryptError(CipherError):
	pass

class FileIOError(SecureFolderError):
	"""Marker for failures caused by the filesystem rather than the data."""

class EncryptIOError(EncryptError, FileIOError):
	pass

class RandomSourceError(EncryptError):
	pass

class DecryptIOError(DecryptError, FileIOError):
	pass

class AuthenticationError(DecryptError):
	"""Wrong key, tampered bytes, or data that is not ciphertext."""


# --- directory level ---

class FolderIOError(FileIOError):
	pass

class BulkOperationError(SecureFolderError):
	"""First per-file failure of a bulk operation.

	`completed` lists files already transformed before the failure; they are
	left as they are. The per-file error is chained as __cause__.
	"""

	def __init__(self, action: str, path: Path, completed: List[Path], reason: str):
		super().__init__(f"{action} failed at {path} after {len(completed)} file(s): {reason}")
		self.action = action
		self.path = path
		self.completed = completed
