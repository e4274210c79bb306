"""
Request classifier

Scans a request's URL and User-Agent against the signature table. Any
unexpected failure surfaces as ClassificationError so the caller can apply
its fail-open or fail-closed policy.
"""

from typing import Optional
from urllib.parse import unquote_plus

from .errors import ClassificationError
from .signatures import Signature, SignatureTable


def build_scan_url(path: str, query: str = "") -> str:
    """Path plus decoded query string, the text URL signatures run against"""
    if not query:
        return path
    return f"{path}?{unquote_plus(query)}"


class RequestClassifier:
    def __init__(self, table: Optional[SignatureTable] = None):
        self.table = table or SignatureTable()

    def classify(self, url: str, user_agent: str = "") -> Optional[Signature]:
        try:
            return self.table.classify(url, user_agent)
        except Exception as e:
            raise ClassificationError(f"Signature matching failed: {e}", original=e) from e
