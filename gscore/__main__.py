"""Entry point for ``python -m gscore``."""

import sys

from .cli import main


sys.exit(main())
