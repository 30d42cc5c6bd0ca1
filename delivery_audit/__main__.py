import sys

from delivery_audit.cli import main

sys.exit(main())
