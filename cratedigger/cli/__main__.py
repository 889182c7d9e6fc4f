"""Allow ``python -m cratedigger.cli`` execution."""

from cratedigger.cli.main import main

main()
