"""Run a quick smoke check against the app and the configured object store.

Usage: python scripts/smoke_request.py [--store]

Calls `/health` through FastAPI's TestClient. With `--store` it also
builds the gateway from the environment (`STORE_*` variables) and runs
its connectivity self check, printing the diagnostics report.
"""

import argparse
import json
import os
import sys

# Ensure `backend/` is on sys.path so `edusync` imports work when running this script directly
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fastapi.testclient import TestClient
from edusync.config import settings
from edusync.errors import MisconfiguredStore
from edusync.main import app
from edusync.storage import ObjectStoreGateway


def check_health():
    client = TestClient(app)
    resp = client.get('/health')
    print('STATUS:', resp.status_code)
    print('JSON:', resp.json())


def check_store() -> int:
    try:
        gateway = ObjectStoreGateway.from_settings(settings)
    except MisconfiguredStore as e:
        print('Store not configured:', e)
        return 1
    connected = gateway.test_connectivity()
    print('CONNECTED:', connected)
    print(json.dumps(gateway.diagnostics(), indent=2))
    return 0 if connected else 1


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--store', action='store_true', help='Also run the object store self check')
    args = parser.parse_args()
    check_health()
    if args.store:
        sys.exit(check_store())
