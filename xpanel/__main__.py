import sys

from xpanel.main import main

sys.exit(main())
