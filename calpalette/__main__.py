import sys

from calpalette.cli import main

sys.exit(main())
