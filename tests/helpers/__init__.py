"""Test helper modules for the gitabra test suite.

- git_helpers: throwaway git repositories
- io_utils: writing YAML config files
- cache_utils: cache reset utilities for test isolation
- processes: small Python child-process scripts
- timeouts: shared wait deadlines
"""
from __future__ import annotations
