"""Run the loopback demo with ``python -m peerplay``."""
import sys

from .demo import main

sys.exit(main())
