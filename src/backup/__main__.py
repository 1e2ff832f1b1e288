import sys

from .backup_cli import main

sys.exit(main())
