"""Allow ``python -m entity_embed``."""

import sys

from .embed_cli import main


sys.exit(main())
