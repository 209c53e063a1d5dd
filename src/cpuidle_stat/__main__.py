"""Allow ``python -m cpuidle_stat``."""

import sys

from .cli import main

sys.exit(main())
