"""Entry point: python -m hesperus"""

from hesperus.main import main

if __name__ == "__main__":
    main()
