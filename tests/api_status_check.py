"""Connectivity check against a Triax EoC controller.

This script posts the configured credentials to the login endpoint of both
firmware generations (`/api/login/` for 2.x and `/cgi.lua/login` for 3.x) and
reports the HTTP status code, the JSON keys returned and whether a session
cookie was handed out. Cookie values are never printed.
"""

import argparse
import json
import sys
from typing import Dict, Optional

import requests
import urllib3


def _build_url(host: str, port: Optional[int], path: str) -> str:
    base = f"https://{host}"
    if port:
        base = f"{base}:{port}"
    return f"{base}{path}"


def check_login(url: str, username: str, password: str, timeout: int) -> Dict[str, str]:
    result: Dict[str, str] = {"url": url}
    try:
        response = requests.post(
            url,
            json={"username": username, "password": password},
            timeout=timeout,
            verify=False,
            allow_redirects=False,
        )
        result["status_code"] = str(response.status_code)
        result["set_cookie"] = "yes" if response.headers.get("Set-Cookie") else "no"
        try:
            parsed = response.json()
            result["json_keys"] = ", ".join(sorted(parsed.keys())) if isinstance(parsed, dict) else "(non-dict JSON)"
            if isinstance(parsed, dict) and parsed.get("cookie"):
                result["body_cookie"] = parsed["cookie"].split("=", 1)[0]
        except ValueError:
            result["json_keys"] = "(no JSON body)"
    except Exception as exc:  # pylint: disable=broad-except
        result["error"] = str(exc)
    return result


def main() -> int:
    parser = argparse.ArgumentParser(description="Smoke test Triax EoC controller login endpoints")
    parser.add_argument("--host", required=True, help="Controller IP or hostname")
    parser.add_argument("--port", type=int, default=None, help="Optional HTTPS port override for the controller")
    parser.add_argument("--username", default="admin", help="Controller user")
    parser.add_argument("--password", required=True, help="Controller password")
    parser.add_argument("--timeout", type=int, default=5, help="Request timeout in seconds")
    args = parser.parse_args()

    urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    endpoints = ["/api/login/", "/cgi.lua/login"]
    results = []
    for path in endpoints:
        url = _build_url(args.host, args.port, path)
        results.append(check_login(url, args.username, args.password, args.timeout))

    print("Controller login check results:\n")
    for result in results:
        print(json.dumps(result, indent=2))

    working = [r for r in results if r.get("status_code") == "200"]
    if not working:
        print("\nNeither login endpoint answered with 200; verify the controller is reachable and the password.")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
