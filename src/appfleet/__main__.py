"""python -m appfleet のエントリポイント。"""

import sys

from appfleet.cli import main

if __name__ == "__main__":
    sys.exit(main())
