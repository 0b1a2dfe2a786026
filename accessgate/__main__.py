"""Allow ``python -m accessgate``."""

import sys

from accessgate.cli import main

if __name__ == "__main__":
    sys.exit(main())
