"""User-Agent based device classification."""

MOBILE_MARKERS = ("mobi", "android", "iphone", "ipod", "blackberry", "windows phone")


def detect_device_type(user_agent: str | None) -> str:
    """Classify a User-Agent string as ``mobile``, ``tablet`` or ``desktop``.

    Android devices without "mobi" in the UA are tablets.
    """
    ua = (user_agent or "").lower()
    if "ipad" in ua or "tablet" in ua or ("android" in ua and "mobi" not in ua):
        return "tablet"
    if any(marker in ua for marker in MOBILE_MARKERS):
        return "mobile"
    return "desktop"
