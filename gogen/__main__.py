import sys

from gogen.cli import main

sys.exit(main())
