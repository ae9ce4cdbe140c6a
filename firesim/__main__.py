import sys

from firesim.cli import main

sys.exit(main())
