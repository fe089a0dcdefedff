import pytest

@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    # cheap bcrypt and no leakage from the developer's real environment
    monkeypatch.setenv('SECURE_FOLDER_BCRYPT_ROUNDS', '4')
    for var in ('SECURE_FOLDER_HOME', 'SECURE_FOLDER_STATE', 'SECURE_FOLDER_KDF', 'SECURE_FOLDER_TAGGED'):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv('HOME', str(tmp_path / 'home-default'))

@pytest.fixture
def home(tmp_path, monkeypatch):
    h = tmp_path / 'home'
    h.mkdir()
    monkeypatch.setenv('SECURE_FOLDER_HOME', str(h))
    return h
