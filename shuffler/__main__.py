"""Allow ``python -m shuffler``."""

from .cli.main import main

main()
