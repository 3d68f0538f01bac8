import sys

from picture_project.cli import main

raise SystemExit(main(sys.argv[1:]))
