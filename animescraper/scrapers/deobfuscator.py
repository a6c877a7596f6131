"""
Deobfuscator Module

Recovers a direct media URL from a stream host page.

The host ships its player bootstrap as a "packed" script
(eval(function(p,a,c,k,e,d){...}(...))). Instead of reimplementing the
unpacker, the script runs inside the page's own JavaScript engine with
eval intercepted, so the generated source is captured as a string and
never executed. This requires a real browser engine at runtime; all
script execution goes through PageSandbox.
"""

import logging
import re
from typing import Any, Optional

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

PACKED_SCRIPT_PATTERN = re.compile(
    r"eval\(function\(p,a,c,k,e,[dr]\)\{.*\}\(.*\)\)",
    re.DOTALL,
)
SOURCE_URL_PATTERN = re.compile(r"source\s*=\s*['\"](.*?)['\"]")

# Media source already exposed by the page
DIRECT_SOURCE_SCRIPT = """() => {
    const source = window.source;
    if (typeof source === 'string' && source) return source;
    const el = document.querySelector('source');
    return el && el.src ? el.src : null;
}"""

# Run the packed wrapper with eval swapped for a recorder
CAPTURE_EVAL_SCRIPT = """(packed) => {
    const originalEval = window.eval;
    let captured = null;
    window.eval = (code) => { captured = String(code); };
    try {
        originalEval(packed);
    } catch (e) {
        // the wrapper may throw once its payload has been recorded
    } finally {
        window.eval = originalEval;
    }
    return captured;
}"""


def find_packed_script(html: str) -> Optional[str]:
    """
    Locate the packed script in a page's HTML.

    Inline <script> bodies are checked first, then the raw document.

    Returns:
        The eval(...) expression, or None
    """
    soup = BeautifulSoup(html, "lxml")
    for script in soup.find_all("script"):
        if script.get("src"):
            continue
        match = PACKED_SCRIPT_PATTERN.search(script.get_text())
        if match:
            return match.group(0)

    match = PACKED_SCRIPT_PATTERN.search(html)
    return match.group(0) if match else None


def extract_source_url(unpacked: str) -> Optional[str]:
    """Pull the media URL out of unpacked player source."""
    match = SOURCE_URL_PATTERN.search(unpacked)
    if match and match.group(1):
        return match.group(1)
    return None


class PageSandbox:
    """
    Script execution boundary around a single stream host page.

    Only the two fixed scripts above are ever evaluated; the packed code
    itself is passed as data and executed by the page's engine.
    """

    def __init__(self, page: Any):
        self._page = page

    async def direct_source(self) -> Optional[str]:
        """Media URL the page exposes without unpacking, if any."""
        result = await self._page.evaluate(DIRECT_SOURCE_SCRIPT)
        return result if isinstance(result, str) and result else None

    async def capture_eval(self, packed: str) -> Optional[str]:
        """
        Run a packed script and return the source it tried to eval.

        Args:
            packed: The eval(function(p,a,c,k,e,d){...}) expression

        Returns:
            Generated source, or None if nothing was captured
        """
        result = await self._page.evaluate(CAPTURE_EVAL_SCRIPT, packed)
        return result if isinstance(result, str) and result else None

    async def page_source(self) -> str:
        return await self._page.content()
