"""Upload a photo, get it back as a zombie."""

from .app import create_app
from .config import Config

__all__ = ["create_app", "Config"]
__version__ = "0.1.0"
