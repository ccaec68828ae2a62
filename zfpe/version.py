"""Runtime engine version."""

from .main import zfpe

__version__ = zfpe.ENGINE_VERSION

__all__ = ["__version__"]
