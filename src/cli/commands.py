"""CLI commands implemented with click.

Every command rebuilds the store from the home directory plus the saved
state file, runs one engine operation and writes the state back.
"""
from __future__ import annotations
import logging, click
from config.settings import LOG_LEVEL, LOG_FORMAT, key_path
from src.lib.auth import KeyFile
from src.lib.errors import SecureFolderError, InvalidIndex
from src.lib.state import open_store

def _fail(msg) -> None:
	click.echo(f'Error: {msg}')
	raise SystemExit(1)

def _load():
	try:
		return open_store()
	except SecureFolderError as e:
		_fail(e)

def _save(store, state):
	try:
		state.save(store)
	except SecureFolderError as e:
		_fail(e)

def _target(store, index: int) -> str:
	dirs = store.directories
	return str(dirs[index].path) if 0 <= index < len(dirs) else f'#{index}'

def _resolve_passphrase(store, passphrase, confirm: bool) -> str:
	if passphrase:
		return passphrase
	saved = KeyFile(key_path(store.home)).load()
	if saved:
		return saved
	return click.prompt('Passphrase', hide_input=True, confirmation_prompt=confirm)

@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging.')
def cli(verbose):
	"""secure-folder: encrypt and decrypt folders in your home directory."""
	logging.basicConfig(level=logging.DEBUG if verbose else getattr(logging, LOG_LEVEL), format=LOG_FORMAT)

@cli.command('list')
def list_dirs():
	"""List tracked folders with their index and state."""
	store, _ = _load()
	dirs = store.directories
	if not dirs:
		click.echo('No folders tracked.')
	for i, d in enumerate(dirs):
		click.echo(f"{i}: {d.path} [{'encrypted' if d.encrypted else 'plain'}]")

@cli.command('files')
@click.argument('index', type=int)
def files(index):
	"""List files inside the folder at INDEX."""
	store, _ = _load()
	try:
		entries = store.file_entries(index)
	except SecureFolderError as e:
		_fail(e)
	if not entries:
		click.echo('No files.')
	for f in sorted(entries, key=lambda f: f.name):
		flag = ' (encrypted)' if f.encrypted else ''
		click.echo(f"{f.name}  {f.size} bytes  {f.created}{flag}")

def _run_bulk(action: str, index: int, passphrase):
	store, state = _load()
	target = _target(store, index)
	op = store.encrypt_directory if action == 'encrypt' else store.decrypt_directory
	try:
		if not 0 <= index < len(store):
			raise InvalidIndex(index, len(store))
		count = op(index, _resolve_passphrase(store, passphrase, confirm=action == 'encrypt'))
	except SecureFolderError as e:
		state.record(action, target, False, str(e))
		_save(store, state)
		_fail(e)
	state.record(action, target, True, f'{count} file(s)')
	_save(store, state)
	click.echo(f'Folder {action}ed: {count} file(s).')

@cli.command()
@click.argument('index', type=int)
@click.option('--passphrase', default=None, help='Passphrase (default: saved key, then prompt).')
def encrypt(index, passphrase):
	"""Encrypt every file in the folder at INDEX."""
	_run_bulk('encrypt', index, passphrase)

@cli.command()
@click.argument('index', type=int)
@click.option('--passphrase', default=None, help='Passphrase (default: saved key, then prompt).')
def decrypt(index, passphrase):
	"""Decrypt every file in the folder at INDEX."""
	_run_bulk('decrypt', index, passphrase)

@cli.command()
@click.argument('name')
def create(name):
	"""Create a new tracked folder NAME in the home directory."""
	store, state = _load()
	try:
		entry = store.create_directory(name)
	except SecureFolderError as e:
		state.record('create', name, False, str(e))
		_save(store, state)
		_fail(e)
	state.unforget(entry.path)
	state.record('create', str(entry.path), True)
	_save(store, state)
	click.echo(f"Folder '{name}' created.")

@cli.command()
@click.argument('index', type=int)
def remove(index):
	"""Stop tracking the folder at INDEX (files are left alone)."""
	store, state = _load()
	try:
		entry = store.remove_directory(index)
	except SecureFolderError as e:
		_fail(e)
	state.forget(entry.path)
	state.record('remove', str(entry.path), True)
	_save(store, state)
	click.echo(f'No longer tracking {entry.path}.')

@cli.command()
@click.argument('index', type=int)
@click.argument('name', required=False)
def preview(index, name):
	"""Print a file from the folder at INDEX (first file if NAME is omitted)."""
	store, _ = _load()
	try:
		names = sorted(store.list_entries(index))
	except SecureFolderError as e:
		_fail(e)
	if not names:
		click.echo('No files to preview.')
		return
	name = name or names[0]
	if name not in names:
		_fail(f'No such file: {name}')
	path = store.directories[index].path / name
	try:
		click.echo(path.read_text(encoding='utf-8'))
	except (OSError, UnicodeDecodeError):
		click.echo('Unable to read file')

@cli.command()
def history():
	"""Show recent operations."""
	_store, state = _load()
	if not state.history:
		click.echo('No history.')
	for h in state.history:
		status = 'OK' if h.get('ok') else 'FAILED'
		detail = f" - {h['detail']}" if h.get('detail') else ''
		click.echo(f"{h.get('time')} {h.get('action')} {h.get('target')} {status}{detail}")

# --- saved key (cleartext, opt-in) ---

@cli.group()
def key():
	"""Manage the saved passphrase (stored in cleartext)."""

@key.command('save')
@click.option('--passphrase', prompt=True, hide_input=True, confirmation_prompt=True)
def key_save(passphrase):
	"""Save a passphrase for later commands. It is NOT encrypted on disk."""
	store, _ = _load()
	kf = KeyFile(key_path(store.home))
	try:
		kf.save(passphrase)
	except (SecureFolderError, OSError) as e:
		_fail(e)
	click.echo(f'Key saved to {kf.path} (cleartext).')

@key.command('clear')
def key_clear():
	"""Delete the saved passphrase."""
	store, _ = _load()
	if KeyFile(key_path(store.home)).clear():
		click.echo('Saved key removed.')
	else:
		click.echo('No saved key.')
