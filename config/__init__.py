"""Configuration package for secure-folder.

Re-exports everything from `config.settings` so callers can write
`from config import NONCE_LENGTH`. Keep the constants in settings.py only.
"""

from .settings import *  # noqa: F401,F403
from .settings import __all__  # noqa: F401
