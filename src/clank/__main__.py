"""Allow running as ``python -m clank``."""

import sys

from .cli import main

sys.exit(main())
