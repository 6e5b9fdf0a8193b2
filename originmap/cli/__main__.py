"""Allow ``python -m originmap.cli`` execution."""

from originmap.cli.cache import main

main()
