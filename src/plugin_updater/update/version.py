"""
Version novelty decisions for plugin updates.

Remote sources report versions in loosely structured formats ("1.4.2",
"1.4.2-SNAPSHOT (build 5)", "b3421", "7"). The rules here only decide whether
a freshly resolved version should replace the installed one; they are not a
general ordering. When two versions cannot be compared, the latest version is
treated as newer so an update is never silently skipped.
"""

import re
from typing import List, Optional

# Suffix markers: whitespace, "(", "-", "#", "[" and "{"
_SUFFIX_RX = re.compile(r"[\s(\-#\[{]")
_INTEGER_RX = re.compile(r"[+-]?[0-9]+")


def sanitize(version: str) -> str:
    """
    Strip build and qualifier suffixes from a version string.

    The string is cut at the first whitespace, `(`, `-`, `#`, `[` or `{`.

    >>> sanitize("1.4.2-SNAPSHOT (build 5)")
    '1.4.2'
    """
    return _SUFFIX_RX.split(version, maxsplit=1)[0]


def _parse_integer(value: str) -> Optional[int]:
    if _INTEGER_RX.fullmatch(value):
        return int(value)
    return None


def _parse_components(version: str) -> Optional[List[int]]:
    components = []
    for segment in version.split("."):
        number = _parse_integer(segment)
        if number is None:
            return None
        components.append(number)
    return components


def is_newer(installed: Optional[str], latest: str) -> bool:
    """
    Decide whether `latest` should replace the `installed` version.

    Rules, applied to the sanitized versions:
    - nothing installed: always newer
    - installed is an integer: newer when latest is a larger integer, or when
      latest is not an integer at all
    - both are dotted (a "." after the first character): compared component
      by component as integers, the longer version wins on an equal prefix,
      equal versions are not newer; a non-numeric component makes latest newer
    - anything else: newer

    Parameters:
        installed (Optional[str]): Version recorded for the last install, or None.
        latest (str): Version reported by the source.

    Returns:
        bool: True if the plugin should be updated to `latest`.
    """
    if installed is None:
        return True

    installed = sanitize(installed)
    latest = sanitize(latest)

    installed_number = _parse_integer(installed)
    if installed_number is not None:
        latest_number = _parse_integer(latest)
        if latest_number is None:
            return True
        return installed_number < latest_number

    if installed.find(".") > 0 and latest.find(".") > 0:
        installed_parts = _parse_components(installed)
        latest_parts = _parse_components(latest)
        if installed_parts is None or latest_parts is None:
            return True
        for current, candidate in zip(installed_parts, latest_parts):
            if candidate != current:
                return candidate > current
        return len(latest_parts) > len(installed_parts)

    return True
