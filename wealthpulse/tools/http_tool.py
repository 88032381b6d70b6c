# PURPOSE: Small HTTP helper for JSON APIs (price lookups).
# CONTEXT: Every request carries a timeout; retries are a bounded loop over transport errors
#          and 5xx answers. 4xx answers fail immediately.

from typing import Any, Dict, Optional

import requests
import structlog

log = structlog.get_logger(__name__)


def fetch_json(
    url: str,
    params: Optional[Dict[str, Any]] = None,
    timeout: Optional[float] = 10.0,
    attempts: int = 2,
    session: Optional[requests.Session] = None,
) -> Any:
    """
    GET a URL and decode its JSON body.

    parameters:
    - url: str – full URL to request.
    - params: dict (optional) – query string parameters.
    - timeout: float (optional) – max seconds to wait for each response (default: 10).
    - attempts: int – total tries before giving up (default: 2).
    - session: requests.Session (optional) – reuse a connection pool.

    returns:
    - Any – decoded JSON body.

    raises:
    - requests.exceptions.RequestException – if the last attempt fails.
    """
    http = session or requests
    last: Optional[requests.exceptions.RequestException] = None
    for attempt in range(1, max(1, attempts) + 1):
        try:
            r = http.get(url, params=params, timeout=timeout)
            r.raise_for_status()
            return r.json()
        except requests.exceptions.HTTPError as e:
            if e.response is not None and e.response.status_code < 500:
                raise
            last = e
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            last = e
        log.warning("http.fetch.retry", url=url, attempt=attempt, error=str(last))
    raise last
