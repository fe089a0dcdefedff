"""Directory store: tracked folders, their encrypted flag, bulk cipher runs.

The tracked list is owned by the store; callers address folders by index and
only see snapshots through `directories`.
"""
from __future__ import annotations
import os, logging
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Tuple
from config.settings import APP_DIR_NAME, ENCRYPTED_SUFFIX, FORMAT_MAGIC, home_dir
from .auth import hash_passphrase, verify_passphrase
from .cipher import FolderCipher, OVERHEAD, is_tagged, is_temp_name
from .errors import (
	CipherError, InputError, InvalidIndex, MissingPassphrase, WrongPassphrase,
	FolderExistsError, FolderIOError, InitError, BulkOperationError
)

log = logging.getLogger(__name__)

@dataclass
class TrackedDirectory:
	path: Path
	encrypted: bool = False
	verifier: Optional[str] = None  # bcrypt hash of the passphrase that encrypted it


def _looks_encrypted(path: Path) -> bool:
	if path.name.endswith(ENCRYPTED_SUFFIX): return True
	try:
		with open(path, 'rb') as fh:
			head = fh.read(len(FORMAT_MAGIC) + OVERHEAD)
	except OSError:
		return False
	return is_tagged(head)


@dataclass
class FileEntry:
	name: str
	size: int
	created: str
	encrypted: bool

	@classmethod
	def from_path(cls, path: Path) -> 'FileEntry':
		st = path.stat()
		created = getattr(st, 'st_birthtime', st.st_ctime)
		return cls(
			name=path.name,
			size=st.st_size,
			created=datetime.fromtimestamp(created).isoformat(timespec='seconds'),
			encrypted=_looks_encrypted(path)
		)


class DirectoryStore:
	def __init__(self, home: Path, dirs: Iterable[TrackedDirectory] = (), cipher: FolderCipher | None = None):
		self.home = Path(home)
		self._dirs: List[TrackedDirectory] = list(dirs)
		self.cipher = cipher or FolderCipher()

	@classmethod
	def initialize(cls, home: Path | None = None, cipher: FolderCipher | None = None) -> 'DirectoryStore':
		"""Track every immediate subdirectory of home, all starting as plaintext."""
		try:
			home = Path(home) if home is not None else home_dir()
		except RuntimeError as e:
			raise InitError(f"Could not find home directory: {e}") from e
		home = home.expanduser().absolute()
		try:
			subdirs = sorted(p for p in home.iterdir() if p.is_dir() and p.name != APP_DIR_NAME)
		except OSError as e:
			raise InitError(f"Cannot list home directory {home}: {e.strerror or e}") from e
		log.debug("tracking %d folder(s) under %s", len(subdirs), home)
		return cls(home, [TrackedDirectory(p) for p in subdirs], cipher)

	def __len__(self) -> int:
		return len(self._dirs)

	@property
	def directories(self) -> Tuple[TrackedDirectory, ...]:
		return tuple(replace(d) for d in self._dirs)

	def find(self, path: Path) -> Optional[int]:
		path = Path(path)
		for i, d in enumerate(self._dirs):
			if d.path == path: return i
		return None

	def _get(self, index: int) -> TrackedDirectory:
		if not 0 <= index < len(self._dirs):
			raise InvalidIndex(index, len(self._dirs))
		return self._dirs[index]

	def _files(self, index: int) -> List[Path]:
		d = self._get(index)
		try:
			with os.scandir(d.path) as it:
				return [Path(e.path) for e in it if e.is_file(follow_symlinks=False) and not is_temp_name(e.name)]
		except OSError as e:
			raise FolderIOError(f"Cannot read directory {d.path}: {e.strerror or e}") from e

	def list_entries(self, index: int) -> List[str]:
		return [p.name for p in self._files(index)]

	def file_entries(self, index: int) -> List[FileEntry]:
		entries = []
		for p in self._files(index):
			try:
				entries.append(FileEntry.from_path(p))
			except FileNotFoundError:
				continue  # removed since listing
			except OSError as e:
				raise FolderIOError(f"Cannot stat {p}: {e.strerror or e}") from e
		return entries

	def _bulk(self, action: str, index: int, passphrase: str) -> int:
		d = self._get(index)
		if not passphrase:
			raise MissingPassphrase('Passphrase required')
		files = self._files(index)
		if action == 'decrypt' and d.verifier and not verify_passphrase(passphrase, d.verifier):
			raise WrongPassphrase(f"Passphrase does not match the one used to encrypt {d.path}")
		op = self.cipher.encrypt_file if action == 'encrypt' else self.cipher.decrypt_file
		done: List[Path] = []
		for path in files:
			try:
				op(path, passphrase)
			except CipherError as e:
				log.warning("%s of %s stopped at %s after %d file(s)", action, d.path, path.name, len(done))
				raise BulkOperationError(action, path, done, str(e)) from e
			done.append(path)
		log.info("%sed %d file(s) in %s", action, len(done), d.path)
		return len(done)

	def encrypt_directory(self, index: int, passphrase: str) -> int:
		"""Encrypt every regular file in the folder; returns the file count.

		Fail-fast: the first failure raises BulkOperationError and files done
		before it stay encrypted. The flag is set only on full success.
		"""
		count = self._bulk('encrypt', index, passphrase)
		d = self._dirs[index]
		d.encrypted = True
		d.verifier = hash_passphrase(passphrase)
		return count

	def decrypt_directory(self, index: int, passphrase: str) -> int:
		count = self._bulk('decrypt', index, passphrase)
		d = self._dirs[index]
		d.encrypted = False
		d.verifier = None
		return count

	def create_directory(self, name: str) -> TrackedDirectory:
		if not name or name in ('.', '..') or any(sep and sep in name for sep in ('/', os.sep, os.altsep)):
			raise InputError(f"Invalid folder name: {name!r}")
		path = self.home / name
		try:
			path.mkdir()
		except FileExistsError as e:
			raise FolderExistsError(f"Folder already exists: {path}") from e
		except ValueError as e:
			raise InputError(f"Invalid folder name: {name!r}") from e
		except OSError as e:
			raise FolderIOError(f"Cannot create {path}: {e.strerror or e}") from e
		entry = TrackedDirectory(path)
		self._dirs.append(entry)
		log.info("created folder %s", path)
		return replace(entry)

	def remove_directory(self, index: int) -> TrackedDirectory:
		"""Stop tracking a folder. Nothing on disk is touched."""
		self._get(index)
		return self._dirs.pop(index)

	def restore(self, entries: Iterable[TrackedDirectory]) -> None:
		"""Merge previously saved entries: update known paths, re-add existing folders."""
		for saved in entries:
			i = self.find(saved.path)
			if i is None:
				if not saved.path.is_dir():
					log.info("dropping vanished folder %s", saved.path)
					continue
				self._dirs.append(replace(saved))
			else:
				self._dirs[i].encrypted = saved.encrypted
				self._dirs[i].verifier = saved.verifier

	def mark_encrypted(self, index: int, value: bool) -> None:
		if 0 <= index < len(self._dirs):
			self._dirs[index].encrypted = value

	def is_encrypted(self, index: int) -> bool:
		return 0 <= index < len(self._dirs) and self._dirs[index].encrypted
