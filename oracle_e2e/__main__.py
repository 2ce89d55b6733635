import sys

from oracle_e2e.cli import main

sys.exit(main())
