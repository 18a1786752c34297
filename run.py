#!/usr/bin/env python3
"""Executable script to run the MQTT release notifier.

This is a wrapper for running from a checkout (e.g. in a CI job) without
installing the package. Otherwise install it and use the
'mqtt-release-notifier' command.
"""

import sys
from pathlib import Path

# Add src directory to Python path for development mode
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from mqtt_release_notifier.main import main

if __name__ == "__main__":
    sys.exit(main())
