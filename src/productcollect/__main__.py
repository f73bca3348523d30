"""Main entry point for the productcollect package."""

from productcollect.cli import main

if __name__ == "__main__":
    main()
