"""
peerql backend
GraphQL query engine over a relational social-graph store
"""

__version__ = "0.1.0"

from .config import settings

__all__ = ["settings", "__version__"]
