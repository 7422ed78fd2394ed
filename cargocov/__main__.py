import sys

from cargocov.cli import main

sys.exit(main())
