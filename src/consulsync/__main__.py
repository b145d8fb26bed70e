"""Allow ``python -m consulsync``."""

from .cli import main

main()
