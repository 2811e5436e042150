"""GExec Core.

Protects credentials and project access of the gexec orchestration
backend: secret envelope (``gexec.vault``), entity models
(``gexec.models``), access resolver (``gexec.access``) and the store
contract (``gexec.store``).
"""
from .version import __version__

__all__ = ["__version__"]
