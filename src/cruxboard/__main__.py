"""Allow `python -m cruxboard`."""

import sys

from cruxboard.cli import main

sys.exit(main())
