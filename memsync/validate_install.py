"""Memsync installation validator, usable as a CLI and as a module.

Usage:
    python -m memsync.validate_install

Checks:
1. Sync config resolves (config.env / environment)
2. Access token set
3. Sync log sink writable
4. Service data store readable
5. Import API endpoint reachable
6. Service reachable (port 8000)

Output: human-readable summary and JSON report.
"""

import json
import os
import platform
import sqlite3
import sys
import time

import httpx

from memsync.config import config_env_path, data_dir, load_config


def check_config() -> dict:
    path = config_env_path()
    try:
        config = load_config()
    except ValueError as e:
        return {
            "name": "sync_config",
            "ok": False,
            "detail": f"invalid configuration: {e}",
            "config_path": str(path),
        }
    return {
        "name": "sync_config",
        "ok": bool(config.endpoint),
        "detail": f"config={path} ({'present' if path.exists() else 'absent'}), endpoint={config.endpoint}",
        "config_path": str(path),
        "endpoint": config.endpoint,
    }


def check_access_token() -> dict:
    try:
        token = load_config().access_token
    except ValueError:
        token = ""
    return {
        "name": "access_token",
        "ok": bool(token),
        "detail": "access token set" if token else "MEMSYNC_ACCESS_TOKEN not set (PUT /settings or config.env)",
    }


def check_log_sink() -> dict:
    try:
        log_file = load_config().log_file
    except ValueError as e:
        return {"name": "log_sink", "ok": False, "detail": f"invalid configuration: {e}"}
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        with open(log_file, "a", encoding="utf-8"):
            pass
        return {"name": "log_sink", "ok": True, "detail": f"writable: {log_file}", "path": str(log_file)}
    except OSError as e:
        return {"name": "log_sink", "ok": False, "detail": f"not writable: {e}", "path": str(log_file)}


def check_data_store() -> dict:
    db_path = data_dir() / "memsync.db"
    if not db_path.exists():
        return {
            "name": "data_store",
            "ok": False,
            "detail": f"DB not found at {db_path} (created on first service start)",
            "path": str(db_path),
        }

    try:
        conn = sqlite3.connect(str(db_path))
        integrity = conn.execute("PRAGMA integrity_check").fetchone()[0]
        deliveries = conn.execute("SELECT COUNT(*) FROM deliveries").fetchone()[0]
        conn.close()
        return {
            "name": "data_store",
            "ok": integrity == "ok",
            "detail": f"deliveries={deliveries}, integrity={integrity}",
            "path": str(db_path),
            "deliveries": deliveries,
            "integrity": integrity,
        }
    except Exception as e:
        return {
            "name": "data_store",
            "ok": False,
            "detail": f"Error reading DB: {e}",
            "path": str(db_path),
        }


def check_endpoint_reachable() -> dict:
    try:
        endpoint = load_config().endpoint
        # any HTTP answer counts; only transport failures are fatal
        resp = httpx.head(endpoint, timeout=5.0)
        return {
            "name": "endpoint_reachable",
            "ok": True,
            "detail": f"{endpoint} answered {resp.status_code}",
            "status_code": resp.status_code,
        }
    except Exception as e:
        return {
            "name": "endpoint_reachable",
            "ok": False,
            "detail": f"Endpoint not reachable: {e}",
        }


def check_server_reachable() -> dict:
    try:
        server_port = os.environ.get("MEMSYNC_PORT", "8000")
        server_host = os.environ.get("MEMSYNC_SERVER_HOST", "127.0.0.1")
        url = f"http://{server_host}:{server_port}/health"
        resp = httpx.get(url, timeout=5.0)
        data = resp.json()
        return {
            "name": "server_reachable",
            "ok": data.get("status") == "ok",
            "detail": f"server v{data.get('version', '?')} on {server_host}:{server_port}, configured={data.get('configured')}",
            "version": data.get("version"),
        }
    except Exception as e:
        return {
            "name": "server_reachable",
            "ok": False,
            "detail": f"Server not reachable: {e}",
        }


def validate_install() -> dict:
    checks = [
        check_config(),
        check_access_token(),
        check_log_sink(),
        check_data_store(),
        check_endpoint_reachable(),
        check_server_reachable(),
    ]

    all_ok = all(c["ok"] for c in checks)

    report = {
        "timestamp": time.time(),
        "hostname": platform.node(),
        "python": sys.version.split()[0],
        "overall": "OK" if all_ok else "ISSUES_FOUND",
        "checks": checks,
    }
    return report


def print_report(report: dict) -> None:
    print("=" * 50)
    print("  Memsync Installation Validation")
    print("=" * 50)
    print(f"  hostname: {report['hostname']}")
    print(f"  python:   {report['python']}")
    print()

    for check in report["checks"]:
        status = "OK" if check["ok"] else "FAIL"
        icon = "+" if check["ok"] else "!"
        print(f"  [{icon}] {check['name']}: {status}")
        print(f"      {check['detail']}")
        print()

    print("=" * 50)
    print(f"  OVERALL: {report['overall']}")
    print("=" * 50)


def main():
    report = validate_install()
    print_report(report)
    print()
    print("--- JSON Report ---")
    print(json.dumps(report, indent=2))
    sys.exit(0 if report["overall"] == "OK" else 1)


if __name__ == "__main__":
    main()
