import sys

from foldbar.cli import main

sys.exit(main())
