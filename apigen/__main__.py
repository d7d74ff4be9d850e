"""Entry point: python -m apigen SOURCE OUTPUT

Reads an annotated Python module, generates its dispatchers and validators.
"""

from __future__ import annotations

from .cli import main

if __name__ == "__main__":
    main()
