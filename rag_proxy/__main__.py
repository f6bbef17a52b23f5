"""Allow `python -m rag_proxy`."""

import sys

from rag_proxy.cli import main

sys.exit(main())
