"""
Placeholder substitution for URL, path and file name templates.

Templates use `%key%` tokens. Substitution walks the mapping in order and
replaces each token with plain string replacement, so percent sequences that
are not placeholders (such as the `%2F` in GitLab project paths) pass through
untouched.
"""

from typing import Dict, Mapping


def replace_placeholders(template: str, values: Mapping[str, str]) -> str:
    """
    Replace every `%key%` token in `template` with its value from `values`.

    Tokens without a mapping stay verbatim; this function never raises.

    Parameters:
        template (str): String containing `%key%` tokens.
        values (Mapping[str, str]): Placeholder values, applied in iteration order.

    Returns:
        str: The expanded string.
    """
    result = template
    for key, value in values.items():
        result = result.replace(f"%{key}%", "" if value is None else str(value))
    return result


def file_name_placeholders(name: str, version: str) -> Dict[str, str]:
    """Build the `name`/`version`/`rawversion` mapping used to name stored artifacts."""
    from plugin_updater.update.version import sanitize

    return {"name": name, "version": sanitize(version), "rawversion": version}
