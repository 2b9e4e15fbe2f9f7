"""Allow `python -m invoice_audit`."""

from .cli.main import main

if __name__ == "__main__":
    main()
