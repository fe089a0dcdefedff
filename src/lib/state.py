"""Persistent store state between runs (flags, verifiers, KDF, history).

The state file is plain JSON, written through a temp file + os.replace so a
crash never leaves it half written.
"""
from __future__ import annotations
import json, os, logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from config.settings import HISTORY_LIMIT, home_dir, state_path, kdf_name, tagged_format
from .cipher import FolderCipher
from .errors import InitError, StateError
from .keys import get_kdf, generate_salt
from .store import DirectoryStore, TrackedDirectory

log = logging.getLogger(__name__)

class StateFile:
	VERSION = 1

	def __init__(self, path: Path | None = None, home: Path | None = None):
		self.path = Path(path) if path is not None else state_path(home)
		self.kdf = kdf_name()
		self.salt: Optional[bytes] = None
		self.history: List[Dict[str, Any]] = []
		self.removed: List[str] = []
		self._dirs: List[TrackedDirectory] = []

	def exists(self) -> bool:
		return self.path.exists() and self.path.stat().st_size > 0

	def load(self) -> None:
		if not self.exists():
			if self.kdf == 'pbkdf2':
				self.salt = generate_salt()
			return
		try:
			data = json.loads(self.path.read_text(encoding='utf-8'))
			if not isinstance(data, dict): raise ValueError('not an object')
			self.kdf = data.get('kdf', self.kdf)
			self.salt = bytes.fromhex(data['salt']) if data.get('salt') else None
			self.history = list(data.get('history', []))
			self.removed = list(data.get('removed', []))
			self._dirs = [
				TrackedDirectory(Path(d['path']), bool(d.get('encrypted')), d.get('verifier'))
				for d in data.get('directories', [])
			]
		except (OSError, ValueError, KeyError, TypeError) as e:
			raise StateError(f"Corrupt state file {self.path}: {e}") from e

	def cipher(self) -> FolderCipher:
		return FolderCipher(get_kdf(self.kdf, self.salt), tagged=tagged_format())

	def apply(self, store: DirectoryStore) -> None:
		for path in self.removed:
			i = store.find(Path(path))
			if i is not None:
				store.remove_directory(i)
		store.restore(d for d in self._dirs if str(d.path) not in self.removed)

	def forget(self, path: Path) -> None:
		if str(path) not in self.removed:
			self.removed.append(str(path))

	def unforget(self, path: Path) -> None:
		"""Track a previously removed folder again on the next load."""
		if str(path) in self.removed:
			self.removed.remove(str(path))

	def record(self, action: str, target: str, ok: bool, detail: str = '') -> None:
		self.history.append({
			'time': datetime.now().isoformat(timespec='seconds'),
			'action': action, 'target': target, 'ok': ok, 'detail': detail
		})
		del self.history[:-HISTORY_LIMIT]

	def save(self, store: DirectoryStore) -> None:
		payload = {
			'version': self.VERSION,
			'kdf': self.kdf,
			'salt': self.salt.hex() if self.salt else None,
			'directories': [{'path': str(d.path), 'encrypted': d.encrypted, 'verifier': d.verifier} for d in store.directories],
			'removed': self.removed,
			'history': self.history
		}
		tmp = self.path.with_suffix('.tmp')
		try:
			self.path.parent.mkdir(parents=True, exist_ok=True)
			tmp.write_text(json.dumps(payload, indent=2), encoding='utf-8')
			os.replace(tmp, self.path)
		except OSError as e:
			raise StateError(f"Cannot write state file {self.path}: {e.strerror or e}") from e
		log.debug("state saved to %s", self.path)

def open_store(home: Path | None = None, path: Path | None = None) -> Tuple[DirectoryStore, StateFile]:
	"""Discover folders under home and overlay the saved state."""
	try:
		home = Path(home) if home is not None else home_dir()
	except RuntimeError as e:
		raise InitError(f"Could not find home directory: {e}") from e
	state = StateFile(path, home)
	state.load()
	store = DirectoryStore.initialize(home, state.cipher())
	state.apply(store)
	return store, state
