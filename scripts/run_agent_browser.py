#!/usr/bin/env python3
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

print(
    f"[agent-browser] binary={os.environ.get('MCP_BROWSER_BINARY', 'auto')} | "
    f"profile={os.environ.get('MCP_BROWSER_PROFILE', '~/.cache/agent-browser/profile')} | "
    f"port={os.environ.get('MCP_BROWSER_PORT', '9222')} | "
    f"provider={os.environ.get('AGENT_BROWSER_PROVIDER', 'claude')}",
    file=sys.stderr,
)

from mcp_servers.agent_browser.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
