"""Allow ``python -m legitly``."""

import sys

from .main import main

sys.exit(main())
