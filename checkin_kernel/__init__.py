"""
Check-in Kernel - flight check-in billing core.

Domain value objects, the explicit check-in state tag, collaborator
protocols, structured logging, typed exceptions and the storage layer used
by the reference store.
"""

__version__ = "0.1.0"
