import logging
from http.cookiejar import DefaultCookiePolicy
from typing import Dict, Optional

import requests
import urllib3

from .errors import TransportError

DEFAULT_TIMEOUT = 30.0


class Transport:
    """HTTP(S) connection pool shared by all controller clients.

    Controllers ship self-signed certificates, so verification is off by
    default. The underlying session never stores or sends cookies on its own;
    every client passes its session cookie explicitly.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.timeout = timeout
        self.logger = logger or logging.getLogger("triax_eoc_exporter")
        self.session = requests.Session()
        self.session.verify = verify
        self.session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
        if not verify:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        data: Optional[str] = None,
    ) -> requests.Response:
        try:
            return self.session.request(
                method,
                url,
                headers=headers,
                data=data,
                timeout=self.timeout,
                allow_redirects=False,
            )
        except requests.Timeout as exc:
            raise TransportError(f"{method} {url} timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

    def close(self) -> None:
        self.session.close()
