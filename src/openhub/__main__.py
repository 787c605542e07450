"""Allow running as ``python -m openhub``."""

import sys

from openhub.cli import main

sys.exit(main())
