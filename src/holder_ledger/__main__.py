"""Allow ``python -m holder_ledger``."""

from holder_ledger.cli.main import main

main()
