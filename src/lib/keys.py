"""Passphrase -> 32 byte key derivation.

Two schemes are available:
- legacy: copy the UTF-8 passphrase into a zero filled 32 byte buffer
  (truncated at 32 bytes). Files written by older builds use this.
- pbkdf2: PBKDF2-HMAC-SHA256 with a per-store salt.
"""
from __future__ import annotations
import secrets
from typing import Callable
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.backends import default_backend
from config.settings import KEY_LENGTH, PBKDF2_ITERATIONS, PBKDF2_SALT_LENGTH, KDF_NAMES
from .errors import ConfigError

KeyDerivation = Callable[[str], bytes]

def legacy_key(passphrase: str) -> bytes:
	raw = passphrase.encode('utf-8')[:KEY_LENGTH]
	return raw + bytes(KEY_LENGTH - len(raw))

class Pbkdf2Key:
	name = 'pbkdf2'

	def __init__(self, salt: bytes, iterations: int = PBKDF2_ITERATIONS):
		if len(salt) < 8: raise ConfigError('PBKDF2 salt too short')
		self.salt = salt
		self.iterations = iterations

	def __call__(self, passphrase: str) -> bytes:
		kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=KEY_LENGTH, salt=self.salt, iterations=self.iterations, backend=default_backend())
		return kdf.derive(passphrase.encode('utf-8'))

def generate_salt() -> bytes:
	return secrets.token_bytes(PBKDF2_SALT_LENGTH)

def get_kdf(name: str, salt: bytes | None = None) -> KeyDerivation:
	if name not in KDF_NAMES:
		raise ConfigError(f"Unknown key derivation '{name}' (expected one of {', '.join(KDF_NAMES)})")
	if name == 'legacy':
		return legacy_key
	if salt is None:
		raise ConfigError('pbkdf2 needs a salt')
	return Pbkdf2Key(salt)
