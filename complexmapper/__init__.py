"""Complex Mapper core package.

Deterministic scoring, canonical export and tamper-evident persistence for
word-association test sessions.
"""

from __future__ import annotations

__version__ = "0.4.0"

__all__ = ["__version__"]
