"""
gitabra - drive git from an editor without blocking it

Runs git as an external process on a cooperative event loop, exposes
blocking waits with deadlines on top of the async machinery, and holds
`git commit` open while the commit message is edited in a buffer.
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
