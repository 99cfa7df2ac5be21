import sys

from latch_agent.harness import main

sys.exit(main())
