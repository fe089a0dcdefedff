import json
import pytest
from pathlib import Path
from src.lib.state import StateFile, open_store
from src.lib.keys import Pbkdf2Key
from src.lib.errors import StateError, ConfigError

def test_open_store_without_state(home):
    (home / 'a').mkdir()
    store, state = open_store()
    assert state.path == home / '.secure_folder' / 'state.json'
    assert not state.exists()
    assert [d.path.name for d in store.directories] == ['a']

def test_flags_survive_save_and_reload(home):
    (home / 'a').mkdir(); (home / 'b').mkdir()
    (home / 'b' / 'f').write_bytes(b'payload')
    store, state = open_store()
    store.encrypt_directory(1, 'pw')
    state.record('encrypt', str(store.directories[1].path), True, '1 file(s)')
    state.save(store)
    store2, state2 = open_store()
    assert not store2.is_encrypted(0) and store2.is_encrypted(1)
    assert store2.directories[1].verifier
    assert state2.history[-1]['action'] == 'encrypt'
    store2.decrypt_directory(1, 'pw')
    assert (home / 'b' / 'f').read_bytes() == b'payload'

def test_removed_folders_stay_untracked(home):
    (home / 'a').mkdir(); (home / 'b').mkdir()
    store, state = open_store()
    entry = store.remove_directory(0)
    state.forget(entry.path)
    state.save(store)
    store2, _ = open_store()
    assert [d.path.name for d in store2.directories] == ['b']

def test_history_is_capped(home, monkeypatch):
    monkeypatch.setattr('src.lib.state.HISTORY_LIMIT', 3)
    store, state = open_store()
    for i in range(5):
        state.record('create', f'd{i}', True)
    assert [h['target'] for h in state.history] == ['d2', 'd3', 'd4']

def test_corrupt_state(home):
    path = home / '.secure_folder' / 'state.json'
    path.parent.mkdir()
    path.write_text('{not json')
    with pytest.raises(StateError):
        open_store()

def test_state_path_override(home, tmp_path, monkeypatch):
    custom = tmp_path / 'custom.json'
    monkeypatch.setenv('SECURE_FOLDER_STATE', str(custom))
    store, state = open_store()
    state.save(store)
    assert json.loads(custom.read_text())['version'] == 1

def test_pbkdf2_choice_is_persisted(home, monkeypatch):
    monkeypatch.setenv('SECURE_FOLDER_KDF', 'pbkdf2')
    store, state = open_store()
    assert isinstance(store.cipher.kdf, Pbkdf2Key)
    salt = state.salt
    state.save(store)
    monkeypatch.delenv('SECURE_FOLDER_KDF')
    store2, state2 = open_store()
    assert state2.kdf == 'pbkdf2' and state2.salt == salt

def test_unknown_kdf(home, monkeypatch):
    monkeypatch.setenv('SECURE_FOLDER_KDF', 'rot13')
    with pytest.raises(ConfigError):
        open_store()

def test_tagged_env_switches_layout(home, monkeypatch):
    monkeypatch.setenv('SECURE_FOLDER_TAGGED', '1')
    (home / 'd').mkdir()
    (home / 'd' / 'f').write_bytes(b'x')
    store, _ = open_store()
    store.encrypt_directory(0, 'pw')
    assert (home / 'd' / 'f').read_bytes().startswith(b'SFv1')
    assert store.file_entries(0)[0].encrypted

def test_unforget_restores_tracking(home):
    (home / 'a').mkdir()
    store, state = open_store()
    state.forget(store.remove_directory(0).path)
    state.save(store)
    assert len(open_store()[0]) == 0
    state.unforget(home / 'a')
    state.save(store)
    assert [d.path.name for d in open_store()[0].directories] == ['a']
