import sys

from apphash_monitor.cli import main

sys.exit(main())
