"""Allow ``python -m warpproxy``."""

import sys

from warpproxy.cli.commands import main

sys.exit(main())
