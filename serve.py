"""Serve the bundled web app to other devices on this WiFi network.

Run from the project root:
  python serve.py [--port 8080] [--bundle path/to/web_app]

Then open the printed http://<lan-ip>:<port> address on a phone or tablet.
"""
import sys

from main import main

if __name__ == '__main__':
    raise SystemExit(main(['serve', *sys.argv[1:]]))
