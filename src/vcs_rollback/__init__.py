"""
vcs-rollback — batch revert coordination across version-control backends.

Package root. Keeps the import surface small: the orchestrator and domain
types are imported from their modules on demand so importing the package has
no side effects (no config loading, no logging setup).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
