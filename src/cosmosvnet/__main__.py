"""Allow running as ``python -m cosmosvnet``."""

from cosmosvnet.cli import main

if __name__ == "__main__":
    main()
