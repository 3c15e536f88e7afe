"""exetest entry point.

Supports: python -m exetest
"""

from .cli import main

if __name__ == "__main__":
    main()
