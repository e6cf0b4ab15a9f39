"""
Permission template expansion.

A permission such as `@admin:{user}:api.v1.admin` expanded with
`{"user": 42}` becomes `@admin:42:api.v1.admin`.
"""
import json
import re
from typing import Any, List, Mapping

from app.features.permissions.errors import TemplateKeyError
from app.utils import get_logger


log = get_logger(__name__)

PLACEHOLDER = re.compile(r"\{([a-zA-Z0-9]+)\}")


def placeholders(permission: str) -> List[str]:
    """Placeholder names in order of appearance, repeats included."""
    return PLACEHOLDER.findall(permission)


def render_value(value: Any) -> str:
    """
    Text form of a placeholder value, as JSON writes it.

    Strings are used as is, `True` becomes `true`, `None` becomes `null` and
    integral floats lose their fraction (`1.0` becomes `1`).
    """
    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return json.dumps(value, separators=(",", ":"), default=str)


def expand(permission: str, data: Mapping[str, Any], strict: bool = False) -> str:
    """
    Substitute every `{name}` in `permission` with the rendered `data[name]`.

    Substitution happens in a single pass, so a value that itself looks like a
    placeholder is left as is.

    Args:
        permission: Permission string, with or without placeholders
        data: Values for the placeholders
        strict: Raise instead of substituting an empty string for missing keys

    Raises:
        TemplateKeyError: `strict` is set and a placeholder has no value
    """
    missing = [name for name in placeholders(permission) if name not in data]
    if missing:
        if strict:
            raise TemplateKeyError(permission, list(dict.fromkeys(missing)))
        log.warning("No value for placeholders %s in %r, substituting empty string", missing, permission)

    def substitute(match: re.Match) -> str:
        key = match.group(1)
        return render_value(data[key]) if key in data else ""

    return PLACEHOLDER.sub(substitute, permission)
