import sys

from planrun._cli import run

sys.exit(run())
