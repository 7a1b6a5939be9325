#!/usr/bin/env python
"""Management entrypoint for the storefront example server.

Typical first run::

    python manage.py migrate --run-syncdb
    python manage.py createsuperuser
    python manage.py runserver
"""

import os
import sys
from pathlib import Path


def main() -> None:
    """Run administrative tasks against the example settings."""
    src = Path(__file__).resolve().parent.parent / "src"
    if src.is_dir() and str(src) not in sys.path:
        sys.path.insert(0, str(src))
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "settings")
    from django.core.management import execute_from_command_line

    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
