"""Allow ``python -m mot_playback`` to launch the player."""

from __future__ import annotations

import sys


def main() -> None:
    from mot_playback import run
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
