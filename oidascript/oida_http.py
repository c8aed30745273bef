import json
import re
from typing import Any, Optional

import httpx

from oidascript.oida_datatypes import FetchFailure

DEFAULT_TIMEOUT = 10.0


def _encoding_from_content_type(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    m = re.search(r'charset\s*=\s*([^\s;]+)', content_type, re.IGNORECASE)
    if m:
        return m.group(1).strip('"').strip("'")
    return None


def deserialize(data: bytes | bytearray | str, *, content_type: Optional[str] = None) -> Any:
    """
    Decode a response body: the JSON structure when the body parses as JSON,
    otherwise the raw text.
    """
    if isinstance(data, (bytes, bytearray)):
        enc = _encoding_from_content_type(content_type) or 'utf-8'
        try:
            text = data.decode(enc, errors='replace')
        except LookupError:
            text = data.decode('utf-8', errors='replace')
    else:
        text = data
    try:
        return json.loads(text)
    except ValueError:
        return text


def http_get(url: str, *, timeout: float = DEFAULT_TIMEOUT) -> Any:
    """
    GET `url` following redirects, waiting at most `timeout` seconds.

    Returns the deserialized body on a 200 response; any other status,
    a timeout or a transport error raises FetchFailure.
    """
    try:
        with httpx.Client(timeout=timeout, follow_redirects=True) as client:
            resp = client.get(url)
    except httpx.TimeoutException as e:
        raise FetchFailure(f"Timed out after {timeout}s fetching {url}") from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise FetchFailure(f"Request to {url} failed: {e}") from e
    if resp.status_code != 200:
        preview = (resp.text or "")[:200]
        raise FetchFailure(f"HTTP {resp.status_code} for {url}: {preview}")
    return deserialize(resp.content, content_type=resp.headers.get("Content-Type"))


class HttpFetcher:
    """The default fetch capability used by `holma`."""
    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout

    def __call__(self, url: str) -> Any:
        return http_get(url, timeout=self.timeout)
