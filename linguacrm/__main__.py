import sys

from linguacrm.cli import main

sys.exit(main())
