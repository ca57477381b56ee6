"""Allow ``python -m lxd_copy``."""

import sys

from .cli import main

sys.exit(main())
