"""Project configuration settings.

Constants shared by the cipher, the directory store and the CLI.
Environment overrides are read at call time (see the helpers at the bottom)
so tests can redirect home and state paths with monkeypatch.
"""

from pathlib import Path
import os

# Security / crypto
KEY_LENGTH = 32        # AES-256
NONCE_LENGTH = 12      # GCM nonce
AUTH_TAG_LENGTH = 16   # GCM tag length
FORMAT_MAGIC = b"SFv1"  # optional self-describing prefix
PBKDF2_ITERATIONS = 200_000
PBKDF2_SALT_LENGTH = 16
DEFAULT_KDF = "legacy"
KDF_NAMES = ("legacy", "pbkdf2")
BCRYPT_ROUNDS = 12

# Files
ENCRYPTED_SUFFIX = ".enc"
APP_DIR_NAME = ".secure_folder"
STATE_FILE_NAME = "state.json"
KEY_FILE_NAME = "key"

# History
HISTORY_LIMIT = 100

# Logging
LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Environment variable names
ENV_HOME = "SECURE_FOLDER_HOME"
ENV_STATE = "SECURE_FOLDER_STATE"
ENV_KDF = "SECURE_FOLDER_KDF"
ENV_TAGGED = "SECURE_FOLDER_TAGGED"
ENV_BCRYPT_ROUNDS = "SECURE_FOLDER_BCRYPT_ROUNDS"


def home_dir() -> Path:
	"""Home directory holding the candidate folders.

	Raises RuntimeError when no home can be determined.
	"""
	env_home = os.environ.get(ENV_HOME)
	return Path(env_home) if env_home else Path.home()


def app_dir(home: Path | None = None) -> Path:
	return (home or home_dir()) / APP_DIR_NAME


def state_path(home: Path | None = None) -> Path:
	env_path = os.environ.get(ENV_STATE)
	return Path(env_path) if env_path else app_dir(home) / STATE_FILE_NAME


def key_path(home: Path | None = None) -> Path:
	return app_dir(home) / KEY_FILE_NAME


def kdf_name() -> str:
	return os.environ.get(ENV_KDF, DEFAULT_KDF)


def tagged_format() -> bool:
	return os.environ.get(ENV_TAGGED, "").lower() in ("1", "true", "yes", "on")


def bcrypt_rounds() -> int:
	try:
		return int(os.environ.get(ENV_BCRYPT_ROUNDS, BCRYPT_ROUNDS))
	except ValueError:
		return BCRYPT_ROUNDS


__all__ = [
	'KEY_LENGTH','NONCE_LENGTH','AUTH_TAG_LENGTH','FORMAT_MAGIC','PBKDF2_ITERATIONS','PBKDF2_SALT_LENGTH',
	'DEFAULT_KDF','KDF_NAMES','BCRYPT_ROUNDS','ENCRYPTED_SUFFIX','APP_DIR_NAME','STATE_FILE_NAME',
	'KEY_FILE_NAME','HISTORY_LIMIT','LOG_LEVEL','LOG_FORMAT','ENV_HOME','ENV_STATE','ENV_KDF',
	'ENV_TAGGED','ENV_BCRYPT_ROUNDS','home_dir','app_dir','state_path','key_path','kdf_name',
	'tagged_format','bcrypt_rounds'
]
