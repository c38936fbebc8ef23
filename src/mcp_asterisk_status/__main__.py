"""Module entrypoint.

Allows:
    python -m mcp_asterisk_status
"""

from __future__ import annotations

from mcp_asterisk_status.server.pbx_server import main

if __name__ == "__main__":
    main()
