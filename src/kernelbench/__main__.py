import sys

from kernelbench.main import main

sys.exit(main())
