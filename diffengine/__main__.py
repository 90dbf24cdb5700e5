"""Allow running diffengine as ``python -m diffengine``."""

from diffengine.cli.commands import main

raise SystemExit(main())
