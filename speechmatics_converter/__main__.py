"""Package entry point for ``python -m speechmatics_converter``.

Delegates to the CLI's main() function.
"""

from speechmatics_converter.cli import main

if __name__ == "__main__":
    main()
