"""MemoVault - note storage kept in sync with a browsable folder tree."""

from memovault.version import get_version

__version__ = get_version()

__all__ = ["__version__"]
