#!/usr/bin/env python3

import sys


def main():
    """Entry point: ``python -m multiconvert [http|mcp]`` (default: http)."""
    mode = sys.argv[1] if len(sys.argv) > 1 else "http"

    if mode == "mcp":
        from multiconvert.server import main as server_main

        return server_main()
    elif mode == "http":
        from multiconvert.api import main as api_main

        return api_main()

    print(f"Unknown mode '{mode}'. Use 'http' or 'mcp'.", file=sys.stderr)
    return 2


if __name__ == "__main__":
    sys.exit(main())
