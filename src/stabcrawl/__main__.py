from __future__ import annotations

import sys

from stabcrawl.cli import main

if __name__ == "__main__":
    sys.exit(main())
