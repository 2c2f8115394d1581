"""
User-agent classification by case-insensitive substring matching.

Order matters: Edge and Opera user agents also carry "chrome" and "safari",
and iPad user agents carry "mobile".
"""

from typing import Optional, Tuple

UNKNOWN_BROWSER = "Unknown"

_BROWSER_RULES = (
    ("Edge", ("edg",)),
    ("Opera", ("opr/", "opera")),
    ("Chrome", ("chrome", "crios")),
    ("Firefox", ("firefox", "fxios")),
)


def classify_browser(user_agent: Optional[str]) -> str:
    if not user_agent:
        return UNKNOWN_BROWSER

    ua = user_agent.lower()
    for browser, tokens in _BROWSER_RULES:
        if any(token in ua for token in tokens):
            return browser

    if "safari" in ua and "chrome" not in ua:
        return "Safari"
    return UNKNOWN_BROWSER


def classify_device(user_agent: Optional[str]) -> str:
    if not user_agent:
        return "Desktop"

    ua = user_agent.lower()
    if "ipad" in ua or "tablet" in ua or ("android" in ua and "mobile" not in ua):
        return "Tablet"
    if "mobile" in ua or "iphone" in ua or "android" in ua:
        return "Mobile"
    return "Desktop"


def classify(user_agent: Optional[str]) -> Tuple[str, str]:
    """(browser, device) for one user-agent string"""
    return classify_browser(user_agent), classify_device(user_agent)
