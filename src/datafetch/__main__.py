import sys

from datafetch.presentation.cli import main

sys.exit(main())
