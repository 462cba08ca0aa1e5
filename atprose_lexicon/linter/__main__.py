"""Module entrypoint for `python -m atprose_lexicon.linter`.

Delegates to the linter CLI implementation.
"""

from .run_lint import main


if __name__ == "__main__":
    main()
