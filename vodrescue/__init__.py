"""vodrescue package.

Provides one CLI:
 - `vodrescue` -> vodrescue.cli:main  (downloads, plus `extract` and `validate` sub-commands)
"""

__all__ = ["__version__"]
__version__ = "0.3.0"
