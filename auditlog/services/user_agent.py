"""Best-effort device info from a User-Agent header."""
import re
from dataclasses import dataclass
from typing import Optional

UNKNOWN = "Noma'lum"
OTHER = "Boshqa"


@dataclass
class DeviceInfo:
    device_type: str
    browser: str
    os: str
    user_agent: str
    browser_version: Optional[str] = None
    os_version: Optional[str] = None


def parse_user_agent(user_agent: Optional[str]) -> DeviceInfo:
    if not user_agent:
        return DeviceInfo(device_type=UNKNOWN, browser=UNKNOWN, os=UNKNOWN, user_agent="-")

    return DeviceInfo(
        device_type=device_type(user_agent),
        browser=browser(user_agent),
        browser_version=browser_version(user_agent),
        os=operating_system(user_agent),
        os_version=os_version(user_agent),
        user_agent=user_agent,
    )


def device_type(user_agent: str) -> str:
    lowered = user_agent.lower()
    if "tablet" in lowered or "ipad" in lowered:
        return "Tablet"
    if "mobile" in lowered:
        return "Mobile"
    return "Desktop"


def browser(user_agent: str) -> str:
    # Order matters: Edge and Opera also advertise Chrome, Chrome advertises Safari
    if "Edg/" in user_agent or "Edge/" in user_agent:
        return "Edge"
    if "OPR/" in user_agent or "Opera/" in user_agent:
        return "Opera"
    if "Chrome/" in user_agent:
        return "Chrome"
    if "Firefox/" in user_agent:
        return "Firefox"
    if "Safari/" in user_agent:
        return "Safari"
    return OTHER


def browser_version(user_agent: str) -> Optional[str]:
    for prefix in ("Edg/", "OPR/", "Chrome/", "Firefox/", "Version/"):
        match = re.search(re.escape(prefix) + r"([^\s)]+)", user_agent)
        if match:
            return match.group(1)
    return None


def operating_system(user_agent: str) -> str:
    if "Windows NT 10.0" in user_agent:
        return "Windows 10/11"
    if "Windows NT 6.3" in user_agent:
        return "Windows 8.1"
    if "Windows NT 6.2" in user_agent:
        return "Windows 8"
    if "Windows NT 6.1" in user_agent:
        return "Windows 7"
    if "Windows" in user_agent:
        return "Windows"
    if "iPhone" in user_agent or "iPad" in user_agent:
        return "iOS"
    if "Mac OS X" in user_agent:
        return "macOS"
    if "Android" in user_agent:
        return "Android"
    if "Linux" in user_agent:
        return "Linux"
    return OTHER


def os_version(user_agent: str) -> Optional[str]:
    patterns = (
        r"(?:iPhone|CPU) OS ([\d_]+)",
        r"Mac OS X ([\d_.]+)",
        r"Android ([\d.]+)",
    )
    for pattern in patterns:
        match = re.search(pattern, user_agent)
        if match:
            return match.group(1).replace("_", ".")
    return None
