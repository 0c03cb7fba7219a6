"""Serve the event sync API with uvicorn.

Usage:
  python scripts/run_server.py --host 127.0.0.1 --port 8000
"""
import os
import sys
import argparse

import uvicorn

project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from eventsync.config import configure_logging


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument('--host', default='127.0.0.1')
    parser.add_argument('--port', type=int, default=8000)
    parser.add_argument('--log-level', default=None)
    args = parser.parse_args()

    configure_logging(args.log_level)
    uvicorn.run(
        'eventsync.api.main:app',
        host=args.host,
        port=args.port,
        log_level=(args.log_level or 'info').lower(),
    )


if __name__ == '__main__':
    main()
