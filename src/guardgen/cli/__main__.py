import sys

from guardgen.cli import main

sys.exit(main())
