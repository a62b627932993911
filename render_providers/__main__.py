import sys

from render_providers.cli import main

sys.exit(main())
