from __future__ import annotations

import sys

from swift_exporter.cli import main

if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
