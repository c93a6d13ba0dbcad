"""Allow `python -m blocklist_push`."""
import sys

from .cli import main

sys.exit(main())
