"""Passphrase helpers: bcrypt verifiers and the opt-in saved key file."""
from __future__ import annotations
import base64, hashlib, os, logging
from pathlib import Path
from typing import Optional
import bcrypt
from config.settings import bcrypt_rounds
from .errors import InputError

log = logging.getLogger(__name__)

class AuthError(InputError):
	pass

def _prehash(passphrase: str) -> bytes:
	# bcrypt only looks at 72 bytes
	return base64.b64encode(hashlib.sha256(passphrase.encode()).digest())

def hash_passphrase(passphrase: str) -> str:
	if not passphrase:
		raise AuthError('Empty passphrase')
	return bcrypt.hashpw(_prehash(passphrase), bcrypt.gensalt(rounds=bcrypt_rounds())).decode()

def verify_passphrase(passphrase: str, hashed: str) -> bool:
	try:
		return bcrypt.checkpw(_prehash(passphrase), hashed.encode())
	except ValueError:
		log.warning('Malformed passphrase verifier ignored')
		return False

class KeyFile:
	"""Cleartext passphrase on disk (mode 0600). Convenience, not protection."""

	def __init__(self, path: Path):
		self.path = Path(path)

	def exists(self) -> bool:
		return self.path.is_file()

	def save(self, passphrase: str) -> None:
		if not passphrase:
			raise AuthError('Empty passphrase')
		self.path.parent.mkdir(parents=True, exist_ok=True)
		fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
		with os.fdopen(fd, 'w', encoding='utf-8') as fh:
			fh.write(passphrase)
		os.chmod(self.path, 0o600)

	def load(self) -> Optional[str]:
		if not self.exists():
			return None
		value = self.path.read_text(encoding='utf-8')
		return value or None

	def clear(self) -> bool:
		if not self.exists():
			return False
		self.path.unlink()
		return True
