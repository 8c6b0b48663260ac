"""Version information."""

# License: BSD 3 clause

# Format expected by setup.py and docs.
# Bump together with the version check in tests/test_basic.py.

__version__ = "0.1.0"
