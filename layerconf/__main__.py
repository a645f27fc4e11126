import sys

from layerconf.cli import main

sys.exit(main())
