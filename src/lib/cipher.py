"""Per-file authenticated encryption (AES-256-GCM, in place).

On-disk layout: nonce(12) || ciphertext || tag(16), optionally preceded by
FORMAT_MAGIC when the cipher is built with tagged=True. Decryption accepts
both layouts.
"""
from __future__ import annotations
import os, re, secrets, shutil, logging
from pathlib import Path
from typing import Type
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.backends import default_backend
from config.settings import KEY_LENGTH, NONCE_LENGTH, AUTH_TAG_LENGTH, FORMAT_MAGIC
from .errors import (
	CipherError, EncryptError, EncryptIOError, RandomSourceError,
	DecryptError, DecryptIOError, AuthenticationError
)
from .keys import KeyDerivation, legacy_key

log = logging.getLogger(__name__)

OVERHEAD = NONCE_LENGTH + AUTH_TAG_LENGTH

def is_tagged(blob: bytes) -> bool:
	return blob.startswith(FORMAT_MAGIC) and len(blob) >= len(FORMAT_MAGIC) + OVERHEAD

def _read(path: Path, error: Type[CipherError]) -> bytes:
	# r+b: a file we could not write back is rejected before anything changes
	try:
		with open(path, 'r+b') as fh:
			return fh.read()
	except OSError as e:
		raise error(f"Cannot open for update ({e.strerror or e})", path) from e

_TEMP_NAME = re.compile(r'^\..+\.[0-9a-f]{8}\.tmp$')

def is_temp_name(name: str) -> bool:
	"""True for leftovers of an interrupted write-back."""
	return bool(_TEMP_NAME.match(name))

def _write_atomic(path: Path, data: bytes) -> None:
	tmp = path.with_name(f".{path.name}.{secrets.token_hex(4)}.tmp")
	try:
		tmp.write_bytes(data)
		shutil.copymode(path, tmp)
		os.replace(tmp, path)
	except OSError:
		tmp.unlink(missing_ok=True)
		raise

class FolderCipher:
	def __init__(self, kdf: KeyDerivation = legacy_key, tagged: bool = False):
		self._backend = default_backend()
		self.kdf = kdf
		self.tagged = tagged

	def _key(self, passphrase: str, error: Type[CipherError]) -> bytes:
		try:
			key = self.kdf(passphrase)
		except (TypeError, ValueError, UnicodeError) as e:
			raise error(f"Key derivation failed: {e}") from e
		if len(key) != KEY_LENGTH: raise error("Bad key length")
		return key

	def seal(self, data: bytes, passphrase: str) -> bytes:
		key = self._key(passphrase, EncryptError)
		try:
			nonce = secrets.token_bytes(NONCE_LENGTH)
		except (OSError, NotImplementedError) as e:
			raise RandomSourceError(f"Random source unavailable: {e}") from e
		try:
			enc = Cipher(algorithms.AES(key), modes.GCM(nonce), backend=self._backend).encryptor()
		except ValueError as e:
			raise EncryptError(f"Cipher setup failed: {e}") from e
		ct = enc.update(data) + enc.finalize()
		prefix = FORMAT_MAGIC if self.tagged else b''
		return prefix + nonce + ct + enc.tag

	def open(self, blob: bytes, passphrase: str) -> bytes:
		key = self._key(passphrase, DecryptError)
		bodies = [blob[len(FORMAT_MAGIC):]] if is_tagged(blob) else []
		# a legacy nonce may start with the magic bytes by chance
		bodies.append(blob)
		bodies = [b for b in bodies if len(b) >= OVERHEAD]
		if not bodies:
			raise AuthenticationError("Ciphertext too short")
		for body in bodies:
			nonce = body[:NONCE_LENGTH]; tag = body[-AUTH_TAG_LENGTH:]; ct = body[NONCE_LENGTH:-AUTH_TAG_LENGTH]
			dec = Cipher(algorithms.AES(key), modes.GCM(nonce, tag), backend=self._backend).decryptor()
			try:
				return dec.update(ct) + dec.finalize()
			except InvalidTag:
				continue
		raise AuthenticationError("Authentication failed (wrong passphrase or not an encrypted file)")

	def encrypt_file(self, path: Path, passphrase: str) -> None:
		path = Path(path)
		data = _read(path, EncryptIOError)
		try:
			blob = self.seal(data, passphrase)
		except CipherError as e:
			e.path = path
			raise
		try:
			_write_atomic(path, blob)
		except OSError as e:
			raise EncryptIOError(f"Cannot write ({e.strerror or e})", path) from e
		log.debug("encrypted %s (%d -> %d bytes)", path, len(data), len(blob))

	def decrypt_file(self, path: Path, passphrase: str) -> None:
		path = Path(path)
		blob = _read(path, DecryptIOError)
		try:
			data = self.open(blob, passphrase)
		except CipherError as e:
			e.path = path
			raise
		try:
			_write_atomic(path, data)
		except OSError as e:
			raise DecryptIOError(f"Cannot write ({e.strerror or e})", path) from e
		log.debug("decrypted %s (%d -> %d bytes)", path, len(blob), len(data))

_default = FolderCipher()

def encrypt(path: Path, passphrase: str) -> None:
	"""Encrypt one file in place with the legacy key scheme."""
	_default.encrypt_file(path, passphrase)

def decrypt(path: Path, passphrase: str) -> None:
	"""Decrypt one file in place; nothing is written if authentication fails."""
	_default.decrypt_file(path, passphrase)
