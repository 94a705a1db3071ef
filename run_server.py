import argparse
import os

import uvicorn

from serverbrowser.observability import setup_logging

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Serve the cached game server directory")
    parser.add_argument('--host', default=os.environ.get("SERVERBROWSER_HOST", "0.0.0.0"))
    parser.add_argument('--port', type=int, default=int(os.environ.get("SERVERBROWSER_PORT", "8000")))
    parser.add_argument('--config', help="JSON config file (env variables still override)")
    parser.add_argument('-v', '--verbose', action='store_true', help="log DEBUG messages")
    args = parser.parse_args()

    setup_logging(verbose=args.verbose)
    if args.config:
        os.environ["SERVERBROWSER_CONFIG"] = args.config

    print(f"Starting Server Browser API on {args.host}:{args.port}")
    print(f"Docs available at: http://localhost:{args.port}/docs")

    uvicorn.run(
        "serverbrowser.api.server:app",
        host=args.host,
        port=args.port,
        log_config=None
    )
