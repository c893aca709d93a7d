import sys

from clientlib_atlas.cli import main

sys.exit(main())
