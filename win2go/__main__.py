"""Allow ``python -m win2go``."""

import sys

from win2go.main import main

if __name__ == "__main__":
    sys.exit(main())
